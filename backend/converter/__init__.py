"""
Converter service: turns pasted or uploaded tabular data into Markdown
specification documents.
"""
