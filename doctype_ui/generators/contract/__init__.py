from doctype_ui.generators.contract.builder import build_contract, resolve_preset
from doctype_ui.generators.contract.types import UIContract

__all__ = ["UIContract", "build_contract", "resolve_preset"]
