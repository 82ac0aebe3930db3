"""Sigil environment: renderer, loaders, errors and host helpers."""

# exceptions first: compiler and template modules import it while this
# package is still initializing
from sigil.environment.exceptions import (
    ErrorCode,
    SourceSnippet,
    TemplateError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateSyntaxError,
    UndefinedError,
    build_source_snippet,
)
from sigil.environment.core import Environment
from sigil.environment.globals import HostFunctions, host_globals
from sigil.environment.loaders import ChoiceLoader, DictLoader, FileSystemLoader, Loader

__all__ = [
    "ChoiceLoader",
    "DictLoader",
    "Environment",
    "ErrorCode",
    "FileSystemLoader",
    "HostFunctions",
    "Loader",
    "SourceSnippet",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateRuntimeError",
    "TemplateSyntaxError",
    "UndefinedError",
    "build_source_snippet",
    "host_globals",
]
