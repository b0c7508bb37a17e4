"""
Unit Tests for best-practice ingestion helpers
Tests for: text extraction, chunking, section tagging
"""
import pytest
from io import BytesIO

from docx import Document as DocxDocument

from myteacher.core.exceptions import IngestionError
from myteacher.models.plan import PlanTypeCode
from myteacher.services.ingestion_service import (
    CHUNK_SIZE,
    OVERLAP_WORDS,
    detect_section_tag,
    extract_text,
    section_tags_for,
    split_into_chunks,
)


class TestSplitIntoChunks:

    def test_short_text_is_one_chunk(self):
        assert split_into_chunks("First paragraph.\n\nSecond paragraph.") == [
            "First paragraph.\n\nSecond paragraph."
        ]

    def test_blank_paragraphs_are_dropped(self):
        assert split_into_chunks("\n\n   \n\nOnly this\n\n\n\n") == ["Only this"]

    def test_empty_text(self):
        assert split_into_chunks("") == []

    def test_long_text_overlaps(self):
        paragraphs = [" ".join(f"p{n}w{i}" for i in range(120)) for n in range(4)]

        chunks = split_into_chunks("\n\n".join(paragraphs))

        assert len(chunks) > 1
        tail = chunks[0].split()[-OVERLAP_WORDS:]
        assert chunks[1].split()[:OVERLAP_WORDS] == tail
        assert all(len(c) <= CHUNK_SIZE + len(paragraphs[0]) for c in chunks)


class TestSectionTags:

    @pytest.mark.parametrize("text,plan_type,expected", [
        ("Present Levels of Academic Achievement", PlanTypeCode.IEP, "present_levels"),
        ("Testing accommodations: extended time", PlanTypeCode.IEP, "accommodations"),
        ("Least restrictive environment justification", PlanTypeCode.IEP, "placement_lre"),
        ("Major life activities affected: learning", PlanTypeCode.FIVE_OH_FOUR, "major_life_activities"),
        ("Antecedent: transitions between classes", PlanTypeCode.BEHAVIOR_PLAN, "antecedents"),
        ("Nothing recognizable here", PlanTypeCode.IEP, None),
    ])
    def test_detect(self, text, plan_type, expected):
        assert detect_section_tag(text, plan_type) == expected

    def test_unknown_plan_type_uses_iep_patterns(self):
        assert detect_section_tag("Annual goal for math", None) == "goals"

    def test_tags_are_sorted_and_unique(self):
        tags = section_tags_for(PlanTypeCode.BEHAVIOR_PLAN)

        assert tags == sorted(set(tags))
        assert "target_behavior" in tags
        assert tags.count("replacement_behavior") == 1


class TestExtractText:

    def test_plain_text(self):
        assert extract_text("Accommodations\n\nExtended time".encode(), "notes.TXT") == "Accommodations\n\nExtended time"

    def test_docx(self):
        document = DocxDocument()
        document.add_paragraph("Annual Goal")
        document.add_paragraph("Sam will read 100 wcpm.")
        buffer = BytesIO()
        document.save(buffer)

        assert "Annual Goal\n\nSam will read 100 wcpm." in extract_text(buffer.getvalue(), "exemplar.docx")

    def test_unsupported_extension(self):
        with pytest.raises(IngestionError):
            extract_text(b"data", "sheet.xlsx")
