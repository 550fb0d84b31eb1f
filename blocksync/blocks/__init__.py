from .models import (
    Annotations,
    AssetRequest,
    BlockNode,
    ConversionResult,
    Diagnostic,
    DiagnosticCode,
    RichTextSpan,
    SourceDocument,
    parse_rich_text,
)
from .richtext import RichTextFormatter, sanitize_url
from .base import BlockConverter
from .context import ConversionContext
from .registry import ConverterRegistry, default_registry
from .document import DocumentConverter

__all__ = [
    "Annotations",
    "AssetRequest",
    "BlockConverter",
    "BlockNode",
    "ConversionContext",
    "ConversionResult",
    "ConverterRegistry",
    "Diagnostic",
    "DiagnosticCode",
    "DocumentConverter",
    "RichTextFormatter",
    "RichTextSpan",
    "SourceDocument",
    "default_registry",
    "parse_rich_text",
    "sanitize_url",
]
