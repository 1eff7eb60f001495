"""Shared fixtures: fake engines, generated PDFs/images and a wired-up service."""

from __future__ import annotations

import shutil
import threading
from pathlib import Path

import pytest
from PIL import Image

from file_converter.conversion import (
    ArtifactStore,
    ConversionDispatcher,
    ConversionService,
    Job,
    JobRegistry,
    RenderingFailed,
    RetentionSweeper,
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


def _pdf_string(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_text_pdf(path: Path, pages: list[str]) -> Path:
    """Write a minimal PDF with one Helvetica text line per page ("" = blank page)."""
    page_ids = [4 + 2 * i for i in range(len(pages))]
    kids = " ".join(f"{pid} 0 R" for pid in page_ids)
    objects: list[bytes] = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {len(pages)} >>".encode(),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for pid, text in zip(page_ids, pages):
        stream = f"BT /F1 18 Tf 72 720 Td ({_pdf_string(text)}) Tj ET".encode() if text else b""
        objects.append(
            (
                "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
                f"/Resources << /Font << /F1 3 0 R >> >> /Contents {pid + 1} 0 R >>"
            ).encode()
        )
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for num, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % num + body + b"\nendobj\n"
    xref = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for off in offsets:
        out += b"%010d 00000 n \n" % off
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref)
    path.write_bytes(bytes(out))
    return path


def build_image(path: Path, size: tuple[int, int] = (200, 120), color: str = "red") -> Path:
    fmt = "JPEG" if path.suffix.lower() in {".jpg", ".jpeg"} else "PNG"
    Image.new("RGB", size, color).save(path, fmt)
    return path


class FakeRenderer:
    """Writes a small image (or stub PDF) per call; fails for selected page numbers.

    Setting `gate` to an Event makes `render` block until it is set; `entered`
    is set as soon as a render starts.
    """

    def __init__(self, fail_pages: set[int] | None = None, fail_all: bool = False) -> None:
        self.fail_pages = fail_pages or set()
        self.fail_all = fail_all
        self.calls: list[str] = []
        self.gate: threading.Event | None = None
        self.entered = threading.Event()

    def render(self, source: Path, target_format: str, out_dir: Path) -> Path:
        self.calls.append(source.name)
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=10)
        if self.fail_all or any(source.stem.endswith(f"-page-{n}") for n in self.fail_pages):
            raise RenderingFailed(f"cannot render {source.name}")
        out = out_dir / f"{source.stem}.{target_format}"
        if target_format in {"png", "jpg"}:
            Image.new("RGB", (10, 10), "white").save(out, "PNG" if target_format == "png" else "JPEG")
        else:
            out.write_bytes(b"%PDF-1.4 rendered")
        return out


class FakeCompletion:
    def __init__(self, answer: str = "A short summary.") -> None:
        self.answer = answer
        self.prompts: list[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.answer


class FakeOcr:
    def recognize(self, path: Path) -> str:
        return f"recognized text from {path.name}"


class FakeMarkdown:
    def convert_to_markdown(self, input_uri: str) -> str:
        return "# Title\n\nBody"


@pytest.fixture
def make_text_pdf(tmp_path):
    def _make(pages: list[str], name: str = "doc.pdf") -> Path:
        return build_text_pdf(tmp_path / name, pages)

    return _make


@pytest.fixture
def make_image(tmp_path):
    def _make(name: str = "photo.png", size: tuple[int, int] = (200, 120), color: str = "red") -> Path:
        return build_image(tmp_path / name, size, color)

    return _make


@pytest.fixture
def out_dir(tmp_path) -> Path:
    d = tmp_path / "out"
    d.mkdir()
    return d


@pytest.fixture
def artifacts(tmp_path) -> ArtifactStore:
    store = ArtifactStore(tmp_path / "data")
    store.ensure_dirs()
    return store


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def completion() -> FakeCompletion:
    return FakeCompletion()


@pytest.fixture
def dispatcher(artifacts, renderer, completion) -> ConversionDispatcher:
    return ConversionDispatcher(
        artifacts,
        renderer=renderer,
        ocr=FakeOcr(),
        completion=completion,
        markdown=FakeMarkdown(),
    )


@pytest.fixture
def registry() -> JobRegistry:
    return JobRegistry()


@pytest.fixture
def service(registry, artifacts, dispatcher) -> ConversionService:
    sweeper = RetentionSweeper(registry, artifacts, delay_sec=0.05, max_age_sec=3600, interval_sec=3600)
    return ConversionService(registry, artifacts, dispatcher, sweeper=sweeper)


@pytest.fixture
def upload(service, artifacts):
    """Copy a local file into the upload area and register it, like the HTTP front door."""

    def _upload(source: Path, original_filename: str | None = None) -> Job:
        name = original_filename or source.name
        stored = artifacts.new_upload_path(name)
        shutil.copyfile(source, stored)
        return service.register_upload(stored, name, stored.stat().st_size)

    return _upload
