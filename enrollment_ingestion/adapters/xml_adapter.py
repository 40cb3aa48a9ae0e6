"""
XML submission parser.

Layout:

    <EnrollmentCollection>
      <Header>
        <RecordCount>2</RecordCount>
        <TransmitterId>...</TransmitterId>
        <ProcessingYear>2024</ProcessingYear>
      </Header>
      <Enrollment>
        <MasterEfin/> <EFIN/> <TransmitterId/> <ProcessingYear/>
        <OfficeInfo>...</OfficeInfo>
        <OwnerInformation>...</OwnerInformation>
        <EFINOwnerInfo>...</EFINOwnerInfo>
        <PriorYearInfo><Bank/><ClientOfYoursLastYear/></PriorYearInfo>
        <TransactionDate/>
      </Enrollment>
      ...
    </EnrollmentCollection>

Parsed with defusedxml: DTDs, entity declarations and external references
are rejected as ParseError.  Element namespaces are ignored.
"""

from __future__ import annotations

from xml.etree.ElementTree import Element

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import ParseError as XMLSyntaxError
from defusedxml.ElementTree import fromstring

from enrollment_kernel.exceptions import ParseError
from enrollment_ingestion.adapters.base import parse_flag
from enrollment_ingestion.domain.types import (
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

ROOT_TAG = "EnrollmentCollection"
HEADER_TAG = "Header"
RECORD_TAG = "Enrollment"

# XML element names for the top-level enrollment fields
_RECORD_ELEMENTS: tuple[tuple[str, str], ...] = (
    ("MasterEfin", "master_efin"),
    ("EFIN", "efin"),
    ("TransmitterId", "transmitter_id"),
    ("ProcessingYear", "processing_year"),
    ("TransactionDate", "transaction_date"),
)


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(element: Element | None, name: str) -> Element | None:
    if element is None:
        return None
    for child in element:
        if _local(child.tag) == name:
            return child
    return None


def _text(element: Element | None, name: str) -> str | None:
    """Stripped text of child ``name``; None when the child is absent."""
    child = _child(element, name)
    if child is None:
        return None
    return (child.text or "").strip()


def _section(cls: type, spec: tuple[tuple[str, str], ...], element: Element | None):
    return cls(**{attr: _text(element, name) or "" for name, attr in spec})


class XmlSubmissionParser:
    """Decode an EnrollmentCollection document."""

    def parse(self, raw: bytes) -> EnrollmentSubmission:
        try:
            root = fromstring(raw, forbid_dtd=True)
        except DefusedXmlException as exc:
            raise ParseError(
                f"Forbidden XML construct: {exc}",
                source_format=SourceFormat.XML.value,
            ) from exc
        except XMLSyntaxError as exc:
            line = exc.position[0] if getattr(exc, "position", None) else None
            raise ParseError(
                f"Malformed XML: {exc}",
                source_format=SourceFormat.XML.value,
                line=line,
            ) from exc

        if _local(root.tag) != ROOT_TAG:
            raise ParseError(
                f"Root element must be {ROOT_TAG}, got {_local(root.tag)}",
                source_format=SourceFormat.XML.value,
                element=_local(root.tag),
            )

        header_el = _child(root, HEADER_TAG)
        header = SubmissionHeader(
            record_count=_text(header_el, "RecordCount") or None,
            transmitter_id=_text(header_el, "TransmitterId") or None,
            processing_year=_text(header_el, "ProcessingYear") or None,
        )

        records = []
        for element in root:
            if _local(element.tag) != RECORD_TAG:
                continue
            records.append(self._parse_record(element, len(records) + 1))

        return EnrollmentSubmission(
            source_format=SourceFormat.XML,
            header=header,
            records=tuple(records),
        )

    def _parse_record(self, element: Element, index: int) -> EnrollmentRecord:
        top = {attr: _text(element, name) or "" for name, attr in _RECORD_ELEMENTS}
        prior_el = _child(element, "PriorYearInfo")
        return EnrollmentRecord(
            index=index,
            office=_section(OfficeInfo, OFFICE_FIELDS, _child(element, "OfficeInfo")),
            owner=_section(OwnerInfo, OWNER_FIELDS, _child(element, "OwnerInformation")),
            efin_owner=_section(OwnerInfo, OWNER_FIELDS, _child(element, "EFINOwnerInfo")),
            prior_year=PriorYearInfo(
                bank=_text(prior_el, "Bank") or "",
                client_last_year=parse_flag(_text(prior_el, "ClientOfYoursLastYear")),
            ),
            **top,
        )
