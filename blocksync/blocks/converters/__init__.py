from .columns import ColumnConverter, ColumnListConverter
from .embed import BookmarkConverter, EmbedConverter
from .fallback import FallbackConverter
from .links import ChildPageConverter, LinkToPageConverter
from .lists import ListConverter, ListRun, group_siblings
from .media import MediaConverter
from .table import TableConverter
from .text import (
    CodeConverter,
    DividerConverter,
    EquationConverter,
    HeadingConverter,
    ParagraphConverter,
    QuoteConverter,
)
from .toggle import CalloutConverter, ToggleConverter

__all__ = [
    "BookmarkConverter",
    "CalloutConverter",
    "ChildPageConverter",
    "CodeConverter",
    "ColumnConverter",
    "ColumnListConverter",
    "DividerConverter",
    "EmbedConverter",
    "EquationConverter",
    "FallbackConverter",
    "HeadingConverter",
    "LinkToPageConverter",
    "ListConverter",
    "ListRun",
    "MediaConverter",
    "ParagraphConverter",
    "QuoteConverter",
    "TableConverter",
    "ToggleConverter",
    "group_siblings",
]
