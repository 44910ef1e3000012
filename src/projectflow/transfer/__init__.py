"""Export and import of the whole data store."""

from projectflow.transfer.exporter import EXPORT_FORMATS, export_backup, render_export, write_export
from projectflow.transfer.importer import ImportFormatError, import_backup, parse_backup

__all__ = [
    "EXPORT_FORMATS",
    "export_backup",
    "render_export",
    "write_export",
    "ImportFormatError",
    "import_backup",
    "parse_backup",
]
