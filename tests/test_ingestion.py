"""Tests for quizdrill/ingestion.py: document text extraction and paragraph splitting."""

import pytest

from quizdrill.ingestion import extract_text, split_into_paragraphs


class TestSplitIntoParagraphs:
    def test_splits_on_blank_lines(self):
        content = "The first paragraph is long enough.\n\nThe second paragraph is long enough."
        assert split_into_paragraphs(content) == [
            "The first paragraph is long enough.",
            "The second paragraph is long enough.",
        ]

    def test_splits_on_single_newlines(self):
        content = "Line one has plenty of text.\nLine two has plenty of text."
        assert len(split_into_paragraphs(content)) == 2

    def test_blank_lines_with_whitespace(self):
        content = "Alpha paragraph with words.\n   \n\t\nBeta paragraph with words."
        assert split_into_paragraphs(content) == ["Alpha paragraph with words.", "Beta paragraph with words."]

    def test_drops_short_pieces(self):
        content = "Chapter 1\n\nThis paragraph is the real content.\n\n12\n\n0123456789"
        assert split_into_paragraphs(content) == ["This paragraph is the real content."]

    def test_eleven_characters_is_kept(self):
        assert split_into_paragraphs("abcdefghijk") == ["abcdefghijk"]

    def test_strips_surrounding_whitespace(self):
        assert split_into_paragraphs("   indented paragraph text   ") == ["indented paragraph text"]

    def test_empty_content(self):
        assert split_into_paragraphs("") == []
        assert split_into_paragraphs(None) == []

    def test_preserves_order(self, sample_paragraphs):
        assert split_into_paragraphs("\n\n".join(sample_paragraphs)) == sample_paragraphs


class TestExtractText:
    def test_txt(self, write_doc):
        path = write_doc(["Cell division occurs in mitosis and meiosis."], name="notes.txt")
        assert "Cell division" in extract_text(path)

    def test_docx(self, write_doc, sample_paragraphs):
        path = write_doc(sample_paragraphs[:3], name="chapter.docx")
        text = extract_text(path)
        assert text.splitlines() == sample_paragraphs[:3]

    def test_docx_paragraphs_survive_splitting(self, write_doc, sample_paragraphs):
        path = write_doc(sample_paragraphs, name="chapter.docx")
        assert split_into_paragraphs(extract_text(path)) == sample_paragraphs

    def test_extension_is_case_insensitive(self, tmp_path):
        path = tmp_path / "NOTES.TXT"
        path.write_text("Uppercase extensions are accepted too.", encoding="utf-8")
        assert "Uppercase" in extract_text(str(path))

    def test_unsupported_type_raises(self, tmp_path):
        path = tmp_path / "slides.pdf"
        path.write_bytes(b"%PDF-1.4")
        with pytest.raises(ValueError, match="Unsupported"):
            extract_text(str(path))
