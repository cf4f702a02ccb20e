# (c) Copyright Datacraft, 2026
"""
Immutable PDF snapshots of structured document content.

Structured content is a TipTap/ProseMirror style JSON tree. The renderer
flattens it to paragraphs, headings and list items and lays them out with
reportlab.
"""
import io
import logging
from pathlib import Path
from typing import Any, Protocol
from uuid import UUID

import aiofiles
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)


class SnapshotRenderer(Protocol):
	async def render(
		self,
		tenant_id: UUID,
		document_id: UUID,
		version_id: UUID,
		payload: dict[str, Any],
	) -> str:
		"""Render ``payload`` and return the storage key of the snapshot."""
		...


class SnapshotError(Exception):
	"""Raised when a snapshot cannot be produced."""


HEADING_SIZES = {1: 18, 2: 15, 3: 13}
BODY_SIZE = 10
LINE_GAP = 4


def _text_of(node: dict[str, Any]) -> str:
	if node.get("type") == "text":
		return node.get("text", "")
	if node.get("type") == "hardBreak":
		return "\n"
	return "".join(_text_of(child) for child in node.get("content", []) or [])


def flatten_blocks(payload: dict[str, Any]) -> list[tuple[str, str, int]]:
	"""
	Turn a structured payload into ``(kind, text, level)`` blocks.

	Unknown node types contribute their text as plain paragraphs.
	"""
	blocks: list[tuple[str, str, int]] = []

	def walk(node: dict[str, Any], depth: int) -> None:
		node_type = node.get("type")
		if node_type == "heading":
			level = int((node.get("attrs") or {}).get("level", 1))
			blocks.append(("heading", _text_of(node), level))
		elif node_type == "paragraph":
			blocks.append(("paragraph", _text_of(node), depth))
		elif node_type == "listItem":
			blocks.append(("bullet", _text_of(node), depth))
		elif node_type in ("bulletList", "orderedList"):
			for child in node.get("content", []) or []:
				walk(child, depth + 1)
		elif node_type == "text":
			blocks.append(("paragraph", node.get("text", ""), depth))
		else:
			for child in node.get("content", []) or []:
				walk(child, depth)

	walk(payload, 0)
	return blocks


def wrap_lines(text: str, font: str, size: float, max_width: float) -> list[str]:
	"""Split ``text`` at hard breaks and wrap each line to ``max_width`` points."""
	lines: list[str] = []
	for line in text.split("\n"):
		# simpleSplit drops blank lines
		lines.extend(simpleSplit(line, font, size, max_width) or [""])
	return lines


def render_pdf(blocks: list[tuple[str, str, int]], title: str) -> bytes:
	"""Lay the blocks out on A4 pages and return the PDF bytes."""
	buffer = io.BytesIO()
	pdf = canvas.Canvas(buffer, pagesize=A4)
	pdf.setTitle(title)
	width, height = A4
	margin = 20 * mm
	y = height - margin

	def new_page() -> float:
		pdf.showPage()
		return height - margin

	for kind, text, level in blocks:
		if kind == "heading":
			size = HEADING_SIZES.get(level, BODY_SIZE + 1)
			font = "Helvetica-Bold"
			indent = 0
		else:
			size = BODY_SIZE
			font = "Helvetica"
			indent = max(level - 1, 0) * 6 * mm if kind == "bullet" else 0

		prefix = "- " if kind == "bullet" else ""
		available = width - 2 * margin - indent
		for line in wrap_lines(f"{prefix}{text}", font, size, available):
			if y < margin + size:
				y = new_page()
			pdf.setFont(font, size)
			pdf.drawString(margin + indent, y, line)
			y -= size + LINE_GAP
		y -= LINE_GAP

	pdf.save()
	return buffer.getvalue()


class PdfSnapshotRenderer:
	"""Writes snapshots under ``media_root/snapshots/<tenant>/<document>/``."""

	def __init__(self, media_root: Path):
		self.media_root = Path(media_root)

	def storage_key(self, tenant_id: UUID, document_id: UUID, version_id: UUID) -> str:
		return f"snapshots/{tenant_id}/{document_id}/{version_id}.pdf"

	async def render(
		self,
		tenant_id: UUID,
		document_id: UUID,
		version_id: UUID,
		payload: dict[str, Any],
	) -> str:
		key = self.storage_key(tenant_id, document_id, version_id)
		try:
			data = render_pdf(flatten_blocks(payload), title=f"{document_id} v{version_id}")
		except Exception as e:
			raise SnapshotError(f"Could not render snapshot for document {document_id}: {e}") from e

		target = self.media_root / key
		target.parent.mkdir(parents=True, exist_ok=True)
		async with aiofiles.open(target, "wb") as f:
			await f.write(data)

		logger.info(f"Rendered snapshot {key} ({len(data)} bytes)")
		return key
