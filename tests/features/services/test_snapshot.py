# (c) Copyright Datacraft, 2026
"""Tests for structured content flattening and PDF snapshots."""
import uuid

import pytest
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from docflow.core.services.snapshot import PdfSnapshotRenderer, flatten_blocks, render_pdf, wrap_lines

LONG_TEXT = " ".join(["Controlled copies are reviewed by the quality owner every year."] * 20)

PAYLOAD = {
    "type": "doc",
    "content": [
        {"type": "heading", "attrs": {"level": 2}, "content": [{"type": "text", "text": "Purpose"}]},
        {
            "type": "paragraph",
            "content": [
                {"type": "text", "text": "Applies to "},
                {"type": "text", "text": "all sites."},
            ],
        },
        {
            "type": "bulletList",
            "content": [
                {"type": "listItem", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "Scope"}]}]},
                {"type": "listItem", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "Owners"}]}]},
            ],
        },
    ],
}


def test_flatten_blocks():
    assert flatten_blocks(PAYLOAD) == [
        ("heading", "Purpose", 2),
        ("paragraph", "Applies to all sites.", 0),
        ("bullet", "Scope", 1),
        ("bullet", "Owners", 1),
    ]


def test_flatten_hard_break():
    payload = {
        "type": "paragraph",
        "content": [{"type": "text", "text": "a"}, {"type": "hardBreak"}, {"type": "text", "text": "b"}],
    }
    assert flatten_blocks(payload) == [("paragraph", "a\nb", 0)]


@pytest.mark.asyncio
async def test_render_writes_pdf(tmp_path):
    renderer = PdfSnapshotRenderer(tmp_path)
    tenant_id, document_id, version_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()

    key = await renderer.render(tenant_id, document_id, version_id, PAYLOAD)

    assert key == f"snapshots/{tenant_id}/{document_id}/{version_id}.pdf"
    data = (tmp_path / key).read_bytes()
    assert data.startswith(b"%PDF")


def test_wrap_lines_fits_width():
    lines = wrap_lines(LONG_TEXT, "Helvetica", 10, 300)

    assert len(lines) > 1
    assert all(stringWidth(line, "Helvetica", 10) <= 300 for line in lines)
    assert " ".join(lines) == LONG_TEXT


def test_wrap_lines_keeps_blank_lines():
    assert wrap_lines("a\n\nb", "Helvetica", 10, 300) == ["a", "", "b"]


def test_long_paragraph_stays_inside_margins(monkeypatch):
    drawn = []
    original = canvas.Canvas.drawString

    def spy(self, x, y, text, *args, **kwargs):
        drawn.append((x, text, self._fontname, self._fontsize))
        return original(self, x, y, text, *args, **kwargs)

    monkeypatch.setattr(canvas.Canvas, "drawString", spy)
    blocks = [
        ("heading", "Scope " * 40, 1),
        ("paragraph", LONG_TEXT, 0),
        ("bullet", LONG_TEXT, 2),
    ]

    data = render_pdf(blocks, title="long")

    assert data.startswith(b"%PDF")
    assert len(drawn) > len(blocks)
    right_edge = A4[0] - 20 * mm
    for x, text, font, size in drawn:
        assert x + stringWidth(text, font, size) <= right_edge
    assert " ".join(text for _, text, font, _ in drawn if font == "Helvetica").count("quality owner") == 40
