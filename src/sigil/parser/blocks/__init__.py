"""Block parsing mixins, one per directive family."""

from sigil.parser.blocks.components import ComponentBlockParsingMixin
from sigil.parser.blocks.control_flow import ControlFlowBlockParsingMixin
from sigil.parser.blocks.helpers import HelperBlockParsingMixin
from sigil.parser.blocks.template_structure import TemplateStructureBlockParsingMixin

__all__ = [
    "ComponentBlockParsingMixin",
    "ControlFlowBlockParsingMixin",
    "HelperBlockParsingMixin",
    "TemplateStructureBlockParsingMixin",
]
