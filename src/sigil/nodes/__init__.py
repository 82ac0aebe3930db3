"""Immutable node tree produced by the Sigil parser.

Node Categories:
    Output: Data, Output, Raw
    Control flow: If, For, While, Break, Continue
    Structure: Template, Extends, Section, Yield, Include, Set
    Components: Component, Attribute, SlotBlock, BoundAttribute
    Directives: HelperCall, ConditionalRegion
"""

from sigil.nodes.base import Node
from sigil.nodes.components import Attribute, AttributeKind, BoundAttribute, Component, SlotBlock
from sigil.nodes.control_flow import Break, Continue, For, If, While
from sigil.nodes.directives import ConditionalRegion, HelperCall
from sigil.nodes.expressions import Expression
from sigil.nodes.output import Data, Output, Raw
from sigil.nodes.structure import Extends, Include, Section, Set, Template, Yield

__all__ = [
    "Attribute",
    "AttributeKind",
    "BoundAttribute",
    "Break",
    "Component",
    "ConditionalRegion",
    "Continue",
    "Data",
    "Expression",
    "Extends",
    "For",
    "HelperCall",
    "If",
    "Include",
    "Node",
    "Output",
    "Raw",
    "Section",
    "Set",
    "SlotBlock",
    "Template",
    "While",
    "Yield",
]
