"""Display index of uploaded files: file type -> year -> month -> files."""

import re

from quantchat.models.schemas import UploadedFile

UNCLASSIFIED = "unclassified"

_DATE_PREFIX = re.compile(r"^(\d{4})_(\d{2})_(\d{2})")


def classify(filename: str) -> tuple[str, str, str]:
    """Derive the (type, year, month) grouping keys for a filename.

    >>> classify("2024_03_15_trades.csv")
    ('csv', '2024', '03')
    >>> classify("notes.CSV")
    ('csv', 'unclassified', 'unclassified')
    """
    file_type = filename.rsplit(".", 1)[-1].lower()
    match = _DATE_PREFIX.match(filename)
    if match:
        return file_type, match.group(1), match.group(2)
    return file_type, UNCLASSIFIED, UNCLASSIFIED


class UploadedFileIndex:
    """Additive grouping of uploaded file descriptors.

    Files are never removed or reordered; each insert appends to the list
    addressed by its grouping keys.
    """

    def __init__(self) -> None:
        self._tree: dict[str, dict[str, dict[str, list[UploadedFile]]]] = {}

    def insert(self, descriptor: UploadedFile) -> tuple[str, str, str]:
        """Add a descriptor and return the keys it was filed under."""
        file_type, year, month = classify(descriptor.name)
        months = self._tree.setdefault(file_type, {}).setdefault(year, {})
        months.setdefault(month, []).append(descriptor)
        return file_type, year, month

    def get(self, file_type: str, year: str, month: str) -> list[UploadedFile]:
        return list(self._tree.get(file_type, {}).get(year, {}).get(month, []))

    def file_types(self) -> list[str]:
        return sorted(self._tree)

    def years(self, file_type: str) -> list[str]:
        """Years for a file type, newest first."""
        return sorted(self._tree.get(file_type, {}), reverse=True)

    def months(self, file_type: str, year: str) -> list[str]:
        """Months for a file type and year, newest first."""
        return sorted(self._tree.get(file_type, {}).get(year, {}), reverse=True)

    def files(self) -> list[UploadedFile]:
        """All descriptors, grouped by type, year and month in insertion order."""
        return [
            descriptor
            for years in self._tree.values()
            for months in years.values()
            for descriptors in months.values()
            for descriptor in descriptors
        ]

    def as_dict(self) -> dict[str, dict[str, dict[str, list[dict]]]]:
        return {
            file_type: {
                year: {
                    month: [d.model_dump(mode="json") for d in descriptors]
                    for month, descriptors in months.items()
                }
                for year, months in years.items()
            }
            for file_type, years in self._tree.items()
        }

    def __len__(self) -> int:
        return sum(len(d) for years in self._tree.values() for m in years.values() for d in m.values())
