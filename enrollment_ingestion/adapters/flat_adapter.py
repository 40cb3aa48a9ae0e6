"""
Flat-file submission parser.

Layout (delimiter configurable, default ``|``; UTF-8 with optional BOM):

    H|TransmitterID|ProcessingYear|RecordCount
    D|MasterEfin|EFIN|TransmitterID|ProcessingYear|<11 office>|<11 owner>|<11 EFIN owner>|Bank|ClientOfYoursLastYear|TransactionDate

Blank lines are ignored.  Uses csv.reader so quoted values may contain the
delimiter.
"""

from __future__ import annotations

import csv
import io

from enrollment_kernel.exceptions import ParseError
from enrollment_ingestion.adapters.base import parse_flag
from enrollment_ingestion.domain.types import (
    ENROLLMENT_FIELDS,
    OFFICE_FIELDS,
    OWNER_FIELDS,
    EnrollmentRecord,
    EnrollmentSubmission,
    OfficeInfo,
    OwnerInfo,
    PriorYearInfo,
    SourceFormat,
    SubmissionHeader,
)

HEADER_TYPE = "H"
DETAIL_TYPE = "D"

HEADER_COLUMNS = 3  # TransmitterID, ProcessingYear, RecordCount
DETAIL_COLUMNS = (
    len(ENROLLMENT_FIELDS)
    + len(OFFICE_FIELDS)
    + 2 * len(OWNER_FIELDS)
    + 3  # Bank, ClientOfYoursLastYear, TransactionDate
)


def _section(cls: type, spec: tuple[tuple[str, str], ...], values: list[str]):
    return cls(**{attr: value for (_, attr), value in zip(spec, values)})


class FlatSubmissionParser:
    """Decode a delimiter-separated submission."""

    def __init__(self, delimiter: str = "|", encoding: str = "utf-8"):
        self.delimiter = delimiter
        self.encoding = "utf-8-sig" if encoding.lower() == "utf-8" else encoding

    def parse(self, raw: bytes) -> EnrollmentSubmission:
        try:
            text = raw.decode(self.encoding)
        except UnicodeDecodeError as exc:
            raise ParseError(
                f"Submission is not valid {self.encoding}: {exc.reason}",
                source_format=SourceFormat.FLAT.value,
            ) from exc

        header: SubmissionHeader | None = None
        records: list[EnrollmentRecord] = []
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=self.delimiter)
        try:
            for row in reader:
                line = reader.line_num
                if not row or all(not cell.strip() for cell in row):
                    continue
                cells = [cell.strip() for cell in row]
                record_type, values = cells[0].upper(), cells[1:]

                if header is None:
                    if record_type != HEADER_TYPE:
                        raise ParseError(
                            "Missing header record; first record must be 'H'",
                            source_format=SourceFormat.FLAT.value,
                            line=line,
                        )
                    header = self._parse_header(values, line)
                elif record_type == DETAIL_TYPE:
                    records.append(self._parse_detail(values, len(records) + 1, line))
                elif record_type == HEADER_TYPE:
                    raise ParseError(
                        "Duplicate header record",
                        source_format=SourceFormat.FLAT.value,
                        line=line,
                    )
                else:
                    raise ParseError(
                        f"Unknown record type {cells[0]!r}",
                        source_format=SourceFormat.FLAT.value,
                        line=line,
                    )
        except csv.Error as exc:
            raise ParseError(
                f"Malformed flat record: {exc}",
                source_format=SourceFormat.FLAT.value,
                line=reader.line_num,
            ) from exc

        if header is None:
            raise ParseError(
                "Empty submission; no header record",
                source_format=SourceFormat.FLAT.value,
            )
        return EnrollmentSubmission(
            source_format=SourceFormat.FLAT,
            header=header,
            records=tuple(records),
        )

    def _parse_header(self, values: list[str], line: int) -> SubmissionHeader:
        if len(values) != HEADER_COLUMNS:
            raise ParseError(
                f"Header record has {len(values)} fields, expected {HEADER_COLUMNS}",
                source_format=SourceFormat.FLAT.value,
                line=line,
            )
        transmitter_id, processing_year, record_count = values
        return SubmissionHeader(
            record_count=record_count or None,
            transmitter_id=transmitter_id or None,
            processing_year=processing_year or None,
        )

    def _parse_detail(self, values: list[str], index: int, line: int) -> EnrollmentRecord:
        if len(values) != DETAIL_COLUMNS:
            raise ParseError(
                f"Detail record has {len(values)} fields, expected {DETAIL_COLUMNS}",
                source_format=SourceFormat.FLAT.value,
                line=line,
            )
        pos = len(ENROLLMENT_FIELDS)
        top = dict(zip((attr for _, attr in ENROLLMENT_FIELDS), values[:pos]))
        office = _section(OfficeInfo, OFFICE_FIELDS, values[pos:pos + len(OFFICE_FIELDS)])
        pos += len(OFFICE_FIELDS)
        owner = _section(OwnerInfo, OWNER_FIELDS, values[pos:pos + len(OWNER_FIELDS)])
        pos += len(OWNER_FIELDS)
        efin_owner = _section(OwnerInfo, OWNER_FIELDS, values[pos:pos + len(OWNER_FIELDS)])
        pos += len(OWNER_FIELDS)
        bank, client_flag, transaction_date = values[pos:]

        return EnrollmentRecord(
            index=index,
            office=office,
            owner=owner,
            efin_owner=efin_owner,
            prior_year=PriorYearInfo(bank=bank, client_last_year=parse_flag(client_flag)),
            transaction_date=transaction_date,
            **top,
        )
