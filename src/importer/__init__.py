"""Importers that turn foreign blog exports into entries."""

from __future__ import annotations

from inkwell.importer.movabletype import LineReader, MovableTypeImporter, import_all

__all__ = ["LineReader", "MovableTypeImporter", "import_all"]
