"""Interchange - export and import the fact store as one CSV file per table."""

from blastradius.interchange.csv_tables import export_store, import_store

__all__ = ["export_store", "import_store"]
