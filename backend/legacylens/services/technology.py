"""Legacy technology classification."""

import re
from enum import Enum
from pathlib import PurePosixPath


class Technology(str, Enum):
    """Legacy technologies the analyzer has pattern tables for."""

    PERL = "perl"
    TIBCO = "tibco"
    PENTAHO = "pentaho"
    OTHER = "other"


EXTENSION_TECHNOLOGY: dict[str, Technology] = {
    "pl": Technology.PERL,
    "pm": Technology.PERL,
    "bwp": Technology.TIBCO,
    "tibco": Technology.TIBCO,
    "xml": Technology.TIBCO,
    "kjb": Technology.PENTAHO,
    "ktr": Technology.PENTAHO,
}

# Kettle exports saved with a plain .xml extension
_PENTAHO_ROOT = re.compile(r"<(transformation|job)>")


def file_extension(filename: str) -> str:
    """Return the lower-cased extension of a filename without the dot."""
    return PurePosixPath(filename.replace("\\", "/")).suffix.lower().lstrip(".")


def detect_technology(filename: str, content: str | None = None) -> Technology:
    """Classify a file by extension, sniffing XML content for Pentaho roots."""
    extension = file_extension(filename)
    technology = EXTENSION_TECHNOLOGY.get(extension, Technology.OTHER)

    if extension == "xml" and content and _PENTAHO_ROOT.search(content):
        return Technology.PENTAHO

    return technology
