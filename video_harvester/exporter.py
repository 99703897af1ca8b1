"""
Harvest Result Exporter
=======================
Writes a finished run's video references to disk.

    - plain text  — one canonical reference per line
    - Word (DOCX) — title, run summary table, one hyperlinked paragraph
                    per reference

``write_outputs`` is what the orchestrator calls once per run (success or
failure) so that partial results always reach the disk.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, TYPE_CHECKING

from .normalizer import video_id_of

if TYPE_CHECKING:
    from .models import RunOutcome
    from .run_config import HarvestRunConfig

logger = logging.getLogger(__name__)


def _clean(links: Iterable[Optional[str]]) -> List[str]:
    return [link.strip() for link in links if link and link.strip()]


def export_text(links: Iterable[str], filepath: str) -> str:
    """
    Write one reference per line.

    Returns:
        Absolute path to the created file
    """
    output_path = Path(filepath)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    cleaned = _clean(links)
    output_path.write_text("\n".join(cleaned) + ("\n" if cleaned else ""), encoding="utf-8")
    logger.info(f"[EXPORT] Wrote {len(cleaned)} link(s) to {output_path.absolute()}")
    return str(output_path.absolute())


def export_docx(
    links: Iterable[str],
    filepath: str,
    *,
    title: str = "Harvested Video Links",
    source_addresses: Optional[List[str]] = None,
    status: str = "success",
) -> str:
    """
    Export references to a formatted Word document.

    Args:
        links: Canonical video references, in output order
        filepath: Output .docx path
        title: Document heading
        source_addresses: Addresses the run processed (summary table)
        status: Run status shown in the summary table

    Returns:
        Absolute path to the created file
    """
    from docx import Document
    from docx.enum.table import WD_TABLE_ALIGNMENT
    from docx.enum.text import WD_ALIGN_PARAGRAPH
    from docx.shared import Pt, RGBColor

    output_path = Path(filepath)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    cleaned = _clean(links)
    addresses = list(source_addresses or [])

    doc = Document()

    # ── Base style ─────────────────────────────────────────────────
    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(10)
    style.paragraph_format.space_after = Pt(4)

    # ── Title + summary ────────────────────────────────────────────
    heading = doc.add_heading(title, level=0)
    heading.alignment = WD_ALIGN_PARAGRAPH.CENTER

    summary_items = [
        ("Addresses Processed", str(len(addresses))),
        ("Video Links", str(len(cleaned))),
        ("Status", status),
    ]
    summary_table = doc.add_table(rows=len(summary_items), cols=2)
    summary_table.alignment = WD_TABLE_ALIGNMENT.CENTER
    for i, (label, value) in enumerate(summary_items):
        row = summary_table.rows[i]
        _cell_text(row.cells[0], label, bold=True, size=Pt(10))
        _cell_text(row.cells[1], value, size=Pt(10))

    if addresses:
        doc.add_heading("Sources", level=1)
        for address in addresses:
            p = doc.add_paragraph(address, style="List Bullet")
            for run in p.runs:
                run.font.size = Pt(9)

    # ── One paragraph per link ─────────────────────────────────────
    doc.add_heading("Video Links", level=1)
    if not cleaned:
        p = doc.add_paragraph("No video links were found.")
        p.runs[0].font.italic = True

    for index, link in enumerate(cleaned, 1):
        p = doc.add_paragraph()
        label = p.add_run(f"{index}. ")
        label.bold = True
        link_run = p.add_run(link)
        link_run.font.color.rgb = RGBColor(0x25, 0x63, 0xEB)
        video_id = video_id_of(link)
        if video_id:
            id_run = p.add_run(f"  ({video_id})")
            id_run.font.size = Pt(8)
            id_run.font.color.rgb = RGBColor(0x64, 0x74, 0x8B)

    doc.save(str(output_path))
    logger.info(f"[EXPORT] Exported DOCX to {output_path.absolute()}")
    return str(output_path.absolute())


def _cell_text(cell, text: str, bold: bool = False, size=None) -> None:
    """Set cell text with formatting."""
    cell.text = text
    for paragraph in cell.paragraphs:
        for run in paragraph.runs:
            run.bold = bold
            if size:
                run.font.size = size


def write_outputs(outcome: "RunOutcome", config: "HarvestRunConfig") -> List[str]:
    """
    Write *outcome*'s links in every enabled format.

    Each format is written independently; one failing does not stop the
    other.  The written paths are also recorded on ``outcome.output_files``.
    """
    written: List[str] = []

    if config.text_path is not None:
        try:
            written.append(export_text(outcome.links, str(config.text_path)))
        except OSError as e:
            logger.error(f"[EXPORT] Text export failed: {e}")

    if config.docx_path is not None:
        try:
            written.append(export_docx(
                outcome.links,
                str(config.docx_path),
                source_addresses=outcome.addresses,
                status=outcome.status.value,
            ))
        except Exception as e:
            logger.error(f"[EXPORT] DOCX export failed: {e}", exc_info=True)

    if not written:
        logger.warning("[EXPORT] No output format was configured — nothing exported")
    outcome.output_files.extend(written)
    return written
