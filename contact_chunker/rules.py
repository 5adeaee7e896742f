"""
Deterministic contact rules.

Sentinels, synonym tables and export layout live here so that the
normalizer, filter and exporter agree on them.
"""

CHUNK_SIZE = 100

NOT_AVAILABLE = "N/A"  # name/email sentinel
UNDEFINED_PHONE = "undefined"

# Prioritized header candidates for spreadsheet rows; first non-empty wins.
FIELD_SYNONYMS = {
    "name": ("name", "Name", "NAME", "contact", "Contact"),
    "email": ("email", "Email", "EMAIL", "e_mail", "E_mail"),
    "phone": ("phone", "Phone", "PHONE"),
}

# Positional fallback for delimited text without matching headers.
FIELD_POSITIONS = {"name": 0, "email": 1, "phone": 2}

CSV_EXTENSIONS = (".csv",)
XLSX_EXTENSIONS = (".xlsx",)
XLS_EXTENSIONS = (".xls",)

EXPORT_HEADER = ("Name", "Email", "Phone")
EXPORT_FILENAME = "contacts-group-{number}.csv"
EXPORT_MEDIA_TYPE = "text/csv"

MANUAL_NAME = "Manual Entry"
MANUAL_EMAIL = "manual-{stamp}@local"
