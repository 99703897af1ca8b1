"""
Tests for exporter.py — text and Word output.
"""

from docx import Document

from video_harvester.exporter import export_docx, export_text, write_outputs
from video_harvester.models import FailureReason, RunOutcome, RunStatus
from video_harvester.run_config import HarvestRunConfig

LINKS = [
    "https://www.youtube.com/watch?v=aaa111",
    "",
    "   ",
    "https://www.youtube.com/watch?v=bbb222",
]


class TestExportText:

    def test_one_link_per_line_blanks_dropped(self, tmp_path):
        path = export_text(LINKS, str(tmp_path / "links.txt"))
        lines = (tmp_path / "links.txt").read_text(encoding="utf-8").splitlines()
        assert lines == [
            "https://www.youtube.com/watch?v=aaa111",
            "https://www.youtube.com/watch?v=bbb222",
        ]
        assert path.endswith("links.txt")

    def test_creates_parent_directory(self, tmp_path):
        target = tmp_path / "nested" / "dir" / "links.txt"
        export_text([], str(target))
        assert target.exists()
        assert target.read_text() == ""


class TestExportDocx:

    def test_title_summary_and_links(self, tmp_path):
        target = tmp_path / "links.docx"
        export_docx(
            LINKS,
            str(target),
            title="Course Videos",
            source_addresses=["https://lms.example.edu/a", "https://lms.example.edu/b"],
        )
        doc = Document(str(target))
        text = "\n".join(p.text for p in doc.paragraphs)

        assert "Course Videos" in text
        assert "1. https://www.youtube.com/watch?v=aaa111  (aaa111)" in text
        assert "2. https://www.youtube.com/watch?v=bbb222  (bbb222)" in text
        assert "https://lms.example.edu/b" in text

        table = doc.tables[0]
        cells = {row.cells[0].text: row.cells[1].text for row in table.rows}
        assert cells["Addresses Processed"] == "2"
        assert cells["Video Links"] == "2"
        assert cells["Status"] == "success"

    def test_empty_result_notice(self, tmp_path):
        target = tmp_path / "empty.docx"
        export_docx([], str(target), status="failed")
        doc = Document(str(target))
        assert any("No video links were found." in p.text for p in doc.paragraphs)
        cells = {row.cells[0].text: row.cells[1].text for row in doc.tables[0].rows}
        assert cells["Status"] == "failed"


class TestWriteOutputs:

    def _outcome(self):
        return RunOutcome(
            status=RunStatus.FAILED,
            links=["https://www.youtube.com/watch?v=aaa111"],
            reason=FailureReason.AUTHENTICATION,
            addresses=["https://lms.example.edu/a"],
        )

    def test_both_formats(self, tmp_path):
        outcome = self._outcome()
        written = write_outputs(outcome, HarvestRunConfig(output_dir=str(tmp_path)))
        assert len(written) == 2
        assert outcome.output_files == written
        assert (tmp_path / "youtube_links.txt").exists()
        assert (tmp_path / "youtube_links.docx").exists()

    def test_formats_can_be_disabled(self, tmp_path):
        outcome = self._outcome()
        config = HarvestRunConfig(output_dir=str(tmp_path), write_docx=False, output_basename="run1")
        written = write_outputs(outcome, config)
        assert [p.rsplit("/", 1)[-1] for p in written] == ["run1.txt"]
        assert not (tmp_path / "run1.docx").exists()

    def test_no_output_dir(self):
        outcome = self._outcome()
        assert write_outputs(outcome, HarvestRunConfig(output_dir=None)) == []
        assert outcome.output_files == []
