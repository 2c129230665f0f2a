"""PDF attachment resolution and first-page rendering for vision prompts."""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from contextlib import asynccontextmanager, contextmanager
from pathlib import Path
from typing import AsyncIterator, Iterable, Iterator, Protocol

import pypdfium2 as pdfium

from smolchat.config.settings import Settings
from smolchat.utils.exceptions import DocumentRenderError

logger = logging.getLogger(__name__)

_POINTS_PER_INCH = 72


def is_pdf_file(filename: str) -> bool:
    return filename.lower().endswith(".pdf")


class PageRenderer(Protocol):
    def render_first_page(self, pdf_path: Path, out_dir: Path) -> Path: ...


class PdfiumRenderer:
    """Render the first page of a PDF to PNG with pdfium."""

    def __init__(self, dpi: int = 150) -> None:
        self.dpi = dpi

    def render_first_page(self, pdf_path: Path, out_dir: Path) -> Path:
        if not pdf_path.is_file():
            raise DocumentRenderError(f"PDF file not found at: {pdf_path}", path=str(pdf_path))

        try:
            document = pdfium.PdfDocument(str(pdf_path))
        except pdfium.PdfiumError as exc:
            raise DocumentRenderError(f"Cannot open or read PDF: {exc}", path=str(pdf_path)) from exc

        try:
            if len(document) == 0:
                raise DocumentRenderError("PDF has no pages", path=str(pdf_path))
            page = document[0]
            try:
                bitmap = page.render(scale=self.dpi / _POINTS_PER_INCH)
                image = bitmap.to_pil()
            finally:
                page.close()
        except pdfium.PdfiumError as exc:
            raise DocumentRenderError(f"Failed to render PDF page: {exc}", path=str(pdf_path)) from exc
        finally:
            document.close()

        # unique suffix: concurrent requests may render the same attachment
        output_path = out_dir / f"{pdf_path.stem}_page1_{uuid.uuid4().hex[:8]}.png"
        try:
            image.save(output_path, format="PNG")
        except OSError as exc:
            raise DocumentRenderError(f"Failed to save image: {output_path}", path=str(pdf_path)) from exc

        logger.info("Converted PDF to image: %s", output_path)
        return output_path


class AttachmentRenderer:
    """Resolve attachment filenames inside the upload directory and render PDFs."""

    def __init__(self, upload_dir: Path, render_dir: Path, renderer: PageRenderer) -> None:
        self.upload_dir = upload_dir
        self.render_dir = render_dir
        self._renderer = renderer

    @classmethod
    def from_settings(cls, settings: Settings) -> "AttachmentRenderer":
        return cls(
            upload_dir=Path(settings.upload_dir),
            render_dir=Path(settings.render_dir),
            renderer=PdfiumRenderer(dpi=settings.render_dpi),
        )

    def resolve(self, filename: str) -> Path:
        """Map an attachment name to a path that stays inside ``upload_dir``."""
        base = self.upload_dir.resolve()
        candidate = (base / filename).resolve()
        if candidate == base or base not in candidate.parents:
            raise DocumentRenderError(f"Attachment path escapes upload directory: {filename}")
        return candidate

    def render(self, filename: str) -> Path:
        pdf_path = self.resolve(filename)
        try:
            self.render_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DocumentRenderError("Failed to create temp directory", path=str(self.render_dir)) from exc
        return self._renderer.render_first_page(pdf_path, self.render_dir)

    def render_all(self, filenames: Iterable[str]) -> list[Path]:
        """Render every PDF in ``filenames``; others and failures are skipped."""
        rendered: list[Path] = []
        try:
            for filename in filenames:
                if not is_pdf_file(filename):
                    logger.debug("Skipping non-PDF attachment: %s", filename)
                    continue
                try:
                    rendered.append(self.render(filename))
                except DocumentRenderError as exc:
                    logger.warning("Error converting PDF %s: %s", filename, exc.message)
        except BaseException:
            cleanup_images(rendered)
            raise
        return rendered


def cleanup_images(paths: Iterable[Path]) -> None:
    for path in paths:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Failed to remove temporary image %s: %s", path, exc)


@contextmanager
def rendered_attachments(renderer: AttachmentRenderer, filenames: Iterable[str]) -> Iterator[list[Path]]:
    """Render PDF attachments and delete the images on every exit path."""
    images = renderer.render_all(filenames)
    try:
        yield images
    finally:
        cleanup_images(images)


@asynccontextmanager
async def arendered_attachments(
    renderer: AttachmentRenderer, filenames: Iterable[str]
) -> AsyncIterator[list[Path]]:
    """Async variant of :func:`rendered_attachments`; rendering runs in a worker thread."""
    images = await asyncio.to_thread(renderer.render_all, list(filenames))
    try:
        yield images
    finally:
        cleanup_images(images)
