import logging
import subprocess
import tempfile
import threading
from pathlib import Path

from ..config import OCR_DPI, OCR_LANG, OPENAI_API_KEY, OPENAI_MODEL, RENDER_TIMEOUT_SEC, SOFFICE_BIN
from .errors import RenderingFailed, UpstreamServiceFailed
from .interfaces import CompletionGateway, MarkdownGateway, OcrGateway, RendererGateway

logger = logging.getLogger(__name__)


class LibreOfficeRenderer(RendererGateway):
    """Headless LibreOffice (`soffice --convert-to`) as the rendering engine.

    Every invocation gets a throwaway user profile: soffice holds a lock on
    its profile, so concurrent renders sharing one profile fail.
    """

    def __init__(self, binary: str = SOFFICE_BIN, timeout_sec: float = RENDER_TIMEOUT_SEC) -> None:
        self._binary = binary
        self._timeout = timeout_sec

    def render(self, source: Path, target_format: str, out_dir: Path) -> Path:
        # "docx:MS Word 2007 XML" style filters: extension is the part before ':'
        ext = target_format.split(":", 1)[0]
        expected = out_dir / f"{source.stem}.{ext}"
        with tempfile.TemporaryDirectory(prefix="lo-profile-", ignore_cleanup_errors=True) as profile:
            cmd = [
                self._binary,
                f"-env:UserInstallation={Path(profile).as_uri()}",
                "--headless",
                "--norestore",
                "--convert-to",
                target_format,
                "--outdir",
                str(out_dir),
                str(source),
            ]
            logger.debug("rendering %s to %s", source.name, target_format)
            try:
                result = subprocess.run(cmd, capture_output=True, text=True, timeout=self._timeout)
            except FileNotFoundError as e:
                raise RenderingFailed(f"renderer binary not found: {self._binary}") from e
            except subprocess.TimeoutExpired as e:
                raise RenderingFailed(f"renderer timed out after {self._timeout:g}s on {source.name}") from e

        if result.returncode != 0:
            raise RenderingFailed(f"renderer exited with status {result.returncode}: {result.stderr.strip()}")
        if not expected.is_file():
            raise RenderingFailed(f"renderer produced no {ext} output for {source.name}")
        return expected


class TesseractOcr(OcrGateway):
    """Tesseract via pytesseract; PDFs are rasterized page by page with pdf2image."""

    def __init__(self, lang: str = OCR_LANG, dpi: int = OCR_DPI) -> None:
        self._lang = lang
        self._dpi = dpi

    def recognize(self, path: Path) -> str:
        import pytesseract
        from PIL import Image

        if path.suffix.lower() == ".pdf":
            from pdf2image import convert_from_path

            pages = convert_from_path(str(path), dpi=self._dpi)
            return "\n\n".join(pytesseract.image_to_string(page, lang=self._lang).strip() for page in pages)
        with Image.open(path) as img:
            return pytesseract.image_to_string(img, lang=self._lang)


class OpenAICompletion(CompletionGateway):
    def __init__(
        self,
        model: str = OPENAI_MODEL,
        api_key: str | None = OPENAI_API_KEY,
        temperature: float = 0.2,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._temperature = temperature
        self._llm = None
        self._lock = threading.Lock()

    def _client(self):
        with self._lock:
            if self._llm is None:
                if not self._api_key:
                    raise UpstreamServiceFailed("OPENAI_API_KEY is not configured")
                from langchain_openai import ChatOpenAI

                self._llm = ChatOpenAI(model=self._model, temperature=self._temperature, api_key=self._api_key)
            return self._llm

    def complete(self, prompt: str) -> str:
        llm = self._client()
        try:
            response = llm.invoke(prompt)
        except Exception as e:
            raise UpstreamServiceFailed(f"completion request failed: {e}") from e
        content = response.content if isinstance(response.content, str) else ""
        if not content.strip():
            raise UpstreamServiceFailed("completion service returned an empty response")
        return content


class DoclingConverter(MarkdownGateway):
    def __init__(self) -> None:
        self._converter = None

    def convert_to_markdown(self, input_uri: str) -> str:
        from docling.document_converter import DocumentConverter  # type: ignore

        if self._converter is None:
            self._converter = DocumentConverter()
        result = self._converter.convert(input_uri)
        return result.document.export_to_markdown()
