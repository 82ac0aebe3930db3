"""Statement compilation for the Sigil compiler.

The statements package is organized into logical modules:
- basic: text, echoes, @set, bound HTML attributes, leftover @yield
- control_flow: @if, @foreach/@for, @while, @break, @continue
- components: <x-...> invocations and their slots
- template_structure: @include / @includeIf
- helpers: helper directives and @env/@auth/@guest/@error regions
"""

from __future__ import annotations

from sigil.compiler.statements.basic import BasicStatementMixin
from sigil.compiler.statements.components import ComponentMixin
from sigil.compiler.statements.control_flow import ControlFlowMixin
from sigil.compiler.statements.helpers import HelperDirectiveMixin
from sigil.compiler.statements.template_structure import TemplateStructureMixin


class StatementCompilationMixin(
    BasicStatementMixin,
    ControlFlowMixin,
    ComponentMixin,
    TemplateStructureMixin,
    HelperDirectiveMixin,
):
    """Combined mixin for compiling all statement types."""
