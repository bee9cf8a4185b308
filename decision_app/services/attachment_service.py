import os
import logging
import pypandoc
import pandas as pd
from typing import List, Optional
from decision_app.core import config

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = [".txt", ".md", ".csv", ".json"]
TRUNCATION_MARKER = "\n...[truncated]"


class PandocMissingError(RuntimeError):
    """Raised when pandoc is not found on the system."""
    pass


class AttachmentError(RuntimeError):
    """Raised when an attachment cannot be read."""
    pass


def build_context(context: str, attachments: Optional[List[str]] = None, max_chars: Optional[int] = None) -> str:
    """Appends attachment text to the user's context and truncates the result."""
    limit = config.MAX_CONTEXT_CHARS if max_chars is None else max_chars
    parts = [context.strip()] if context and context.strip() else []
    for idx, text in enumerate(attachments or []):
        if text and text.strip():
            parts.append(f"Attached file {idx + 1}:\n{text.strip()}")

    combined = "\n\n".join(parts)
    if limit and len(combined) > limit:
        keep = max(limit - len(TRUNCATION_MARKER), 0)
        combined = combined[:keep].rstrip() + TRUNCATION_MARKER
    return combined


class AttachmentService:
    def __init__(self):
        self._pandoc_available = False
        try:
            pypandoc.get_pandoc_version()
            self._pandoc_available = True
        except OSError:
            logger.warning("Pandoc not found. DOCX attachments will be rejected. Please install pandoc.")

    def extract_text(self, file_path: str) -> str:
        """Reads a .docx, .xlsx or plain text attachment as markdown-ish text."""
        file_ext = os.path.splitext(file_path)[1].lower()
        if file_ext not in [".docx", ".xlsx"] + TEXT_EXTENSIONS:
            raise ValueError(f"Unsupported file extension: {file_ext}")

        if not os.path.exists(file_path):
            raise FileNotFoundError(f"File not found: {file_path}")

        try:
            if file_ext in TEXT_EXTENSIONS:
                with open(file_path, "r", encoding="utf-8", errors="replace") as f:
                    return f.read()

            if file_ext == ".docx":
                if not self._pandoc_available:
                    raise PandocMissingError("Pandoc is not available for .docx conversion.")
                return pypandoc.convert_file(file_path, "gfm", extra_args=["--wrap=none"])

            all_sheets = pd.read_excel(file_path, sheet_name=None)
            md_content = []
            for sheet_name, df in all_sheets.items():
                md_content.append(f"## Sheet: {sheet_name}\n")
                try:
                    md_content.append(df.to_markdown(index=False))
                except ImportError:
                    md_content.append(df.to_string(index=False))
            return "\n\n".join(md_content)
        except PandocMissingError:
            raise
        except Exception as e:
            logger.error(f"Error reading attachment {file_path}: {e}")
            raise AttachmentError(f"Could not read attachment: {e}") from e
