"""
변환 파이프라인 예외

Only two situations abort a conversion: raw input that cannot be read as
anything, and a template name outside the supported output formats.
Every other uncertainty is reported as a ConversionWarning.
"""

from typing import Iterable, Optional

from .base import DomainException


class ConversionError(DomainException):
    """변환 기본 예외"""

    def __init__(self, message: str, code: str = "CONVERSION_ERROR",
                 details: Optional[dict] = None):
        super().__init__(message=message, code=code, details=details)


class InputError(ConversionError):
    """빈 입력 또는 해석할 수 없는 입력"""

    def __init__(self, message: str = "Input is empty", details: Optional[dict] = None):
        super().__init__(
            message=f"Input error: {message}",
            code="INPUT_ERROR",
            details=details or {},
        )


class UnsupportedTemplateError(ConversionError):
    """지원하지 않는 템플릿 이름"""

    def __init__(self, template: object, supported: Iterable[str] = ()):
        supported_list = list(supported)
        super().__init__(
            message=f"Unsupported template: {template!r} (expected one of {', '.join(supported_list)})",
            code="UNSUPPORTED_TEMPLATE",
            details={"template": template, "supported": supported_list},
        )
        self.template = template
