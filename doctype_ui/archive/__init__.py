from doctype_ui.archive.exporter import pack, unpack

__all__ = ["pack", "unpack"]
