from .align import AlignmentError, align
from .annotate import Annotator, annotate
from .build import DictionaryBuildError
from .dictionary import (
    Dictionary,
    DictionaryEntry,
    DictionaryLoadError,
    ReadingPart,
    default_dictionary,
    load_dictionary,
)
from .document import Document, FuriganaSegment, PlainSegment
from .nlp import Analyzer, AnalyzerUnavailableError, Token, TokenizationError
from .render import FORMATS, RenderOptions, UnsupportedFormatError, render
from .select import PronunciationFallback, exact, heuristic, none_tolerant

__all__ = [
    "AlignmentError",
    "Analyzer",
    "AnalyzerUnavailableError",
    "Annotator",
    "Dictionary",
    "DictionaryBuildError",
    "DictionaryEntry",
    "DictionaryLoadError",
    "Document",
    "FORMATS",
    "FuriganaSegment",
    "PlainSegment",
    "PronunciationFallback",
    "ReadingPart",
    "RenderOptions",
    "Token",
    "TokenizationError",
    "UnsupportedFormatError",
    "align",
    "annotate",
    "default_dictionary",
    "exact",
    "heuristic",
    "load_dictionary",
    "none_tolerant",
    "render",
]
