"""Value containers handed to components: attributes and slots."""

from __future__ import annotations

from sigil.support.attributes import AttributeBag, class_list, style_list
from sigil.support.slots import Slot, SlotMap

__all__ = ["AttributeBag", "Slot", "SlotMap", "class_list", "style_list"]
