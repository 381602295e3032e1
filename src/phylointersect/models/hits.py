"""
Pydantic models for alignment hits and reads.

Hits come from BLAST tabular output with a trailing taxonomy column
(-outfmt "6 std staxids"). All hits for one read must be contiguous in
the file, best hit first, which is how BLAST writes them.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from phylointersect.core.constants import (
    HIT_FIELD_BITSCORE,
    HIT_FIELD_EVALUE,
    HIT_FIELD_IDENTITY,
    HIT_FIELD_LENGTH,
    HIT_FIELD_QUERY,
    HIT_FIELD_SUBJECT,
    HIT_FIELD_TAXID,
    HIT_MIN_FIELDS,
    NOT_AVAILABLE,
)


def parse_taxid_field(value: str) -> int | None:
    """
    Parse the staxids column.

    Returns None for the 'N/A' marker. When BLAST reports several taxa for
    one subject ('9606;9598') the first is used.

    Raises:
        ValueError: If the field is not an integer taxon ID.
    """
    value = value.strip()
    if not value or value == NOT_AVAILABLE:
        return None
    first = value.split(";", 1)[0].strip()
    if first == NOT_AVAILABLE:
        return None
    taxid = int(first)
    if taxid < 0:
        msg = f"Taxon ID must not be negative, got {taxid}"
        raise ValueError(msg)
    return taxid


class AlignmentHit(BaseModel):
    """
    Single alignment of a read against a reference sequence.

    Attributes:
        read_id: Query sequence identifier.
        subject_id: Reference sequence identifier.
        percent_identity: Percent identity of the alignment.
        alignment_length: Alignment length in bases.
        evalue: Expectation value; lower is better.
        bitscore: Bit score, when present.
        taxid: Taxon ID of the reference, None when BLAST reported 'N/A'.
        raw_evalue: E-value text as written in the hit file.
        raw_identity: Percent identity text as written in the hit file.
    """

    read_id: str = Field(description="Query sequence ID (read ID)")
    subject_id: str = Field(description="Subject sequence ID")
    percent_identity: float = Field(ge=0, description="Percent identity")
    alignment_length: int = Field(ge=0, description="Alignment length")
    evalue: float = Field(ge=0, description="Expectation value")
    bitscore: float | None = Field(default=None, description="Bit score")
    taxid: int | None = Field(default=None, description="Subject taxon ID")
    raw_evalue: str | None = Field(default=None, description="E-value as written")
    raw_identity: str | None = Field(default=None, description="Identity as written")

    model_config = {"frozen": True}

    @classmethod
    def from_hit_line(cls, line: str) -> AlignmentHit:
        """
        Parse a single line of BLAST '6 std staxids' output.

        Expected format:
        qseqid sseqid pident length mismatch gapopen qstart qend sstart send evalue bitscore staxids

        Raises:
            ValueError: If the line has too few fields or a non-numeric value.
        """
        fields = line.rstrip("\r\n").split("\t")
        if len(fields) < HIT_MIN_FIELDS:
            msg = f"Expected at least {HIT_MIN_FIELDS} fields in hit line, got {len(fields)}"
            raise ValueError(msg)

        bitscore = fields[HIT_FIELD_BITSCORE].strip()
        return cls(
            read_id=fields[HIT_FIELD_QUERY],
            subject_id=fields[HIT_FIELD_SUBJECT],
            percent_identity=float(fields[HIT_FIELD_IDENTITY]),
            alignment_length=int(fields[HIT_FIELD_LENGTH]),
            evalue=float(fields[HIT_FIELD_EVALUE]),
            bitscore=float(bitscore) if bitscore else None,
            taxid=parse_taxid_field(fields[HIT_FIELD_TAXID]),
            raw_evalue=fields[HIT_FIELD_EVALUE].strip(),
            raw_identity=fields[HIT_FIELD_IDENTITY].strip(),
        )

    def coverage(self, read_length: int) -> float:
        """
        Fraction of the read spanned by this alignment.

        Not clamped: gapped alignments can be longer than the read.

        Raises:
            ValueError: If read_length is not positive.
        """
        if read_length <= 0:
            msg = f"Read length must be positive, got {read_length}"
            raise ValueError(msg)
        return self.alignment_length / read_length
