"""
File processor service for extracting plain text from stored materials.
Supports: PDF, Word (.docx) and UTF-8 text.
"""

import io

import PyPDF2
from docx import Document as WordDocument

from app.core.errors import EmptyContent, ExtractionFailed
from app.core.logging_config import get_logger
from app.models.material import FileType

MAX_FILE_SIZE = 100 * 1024 * 1024  # 100 MB
SUPPORTED_FILE_TYPES = {t.value for t in FileType}

logger = get_logger(__name__)


def extract_text_from_pdf(file_content: bytes) -> str:
    """Extract text from PDF file."""
    try:
        pdf_reader = PyPDF2.PdfReader(io.BytesIO(file_content))
        if pdf_reader.is_encrypted:
            raise ExtractionFailed(error="The PDF is password protected.")
        text_parts = []
        logger.debug(f"Processing PDF with {len(pdf_reader.pages)} pages")
        for page in pdf_reader.pages:
            text = page.extract_text()
            if text:
                text_parts.append(text)
        return "\n\n".join(text_parts)
    except ExtractionFailed:
        raise
    except Exception as e:
        logger.error(f"PDF extraction failed: {e}")
        raise ExtractionFailed(error="The PDF file could not be read. It may be corrupted.")


def extract_text_from_docx(file_content: bytes) -> str:
    """Extract text from Word document (.docx), including tables."""
    try:
        doc = WordDocument(io.BytesIO(file_content))
        text_parts = [p.text for p in doc.paragraphs if p.text.strip()]
        for table in doc.tables:
            for row in table.rows:
                row_text = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if row_text:
                    text_parts.append(" | ".join(row_text))
        return "\n\n".join(text_parts)
    except Exception as e:
        logger.error(f"DOCX extraction failed: {e}")
        raise ExtractionFailed(error="The Word document could not be read. It may be corrupted.")


def extract_text_from_text_file(file_content: bytes) -> str:
    """Decode a plain text file as UTF-8."""
    try:
        return file_content.decode("utf-8")
    except UnicodeDecodeError as e:
        logger.warning(f"Text file is not valid UTF-8: {e}")
        raise ExtractionFailed(error="The text file is not valid UTF-8.")


def extract_text(file_content: bytes, file_type: str) -> str:
    """
    Extract plain text from a stored file.

    Args:
        file_content: Raw bytes of the file
        file_type: Declared type of the material (pdf, docx, txt)

    Returns:
        Extracted text content

    Raises:
        ExtractionFailed: If the file cannot be parsed or the type is unsupported
        EmptyContent: If parsing yields no text (empty file, image-only PDF)
    """
    file_type = (file_type or "").strip().lower()
    logger.info(f"Extracting text | type={file_type} | size={len(file_content)} bytes")

    if len(file_content) > MAX_FILE_SIZE:
        raise ExtractionFailed(
            error=f"File size exceeds maximum allowed size of {MAX_FILE_SIZE // (1024 * 1024)} MB."
        )

    if file_type == FileType.PDF.value:
        text = extract_text_from_pdf(file_content)
    elif file_type == FileType.DOCX.value:
        text = extract_text_from_docx(file_content)
    elif file_type == FileType.TXT.value:
        text = extract_text_from_text_file(file_content)
    else:
        raise ExtractionFailed(error=f"Unsupported file type: {file_type}")

    if not text or not text.strip():
        raise EmptyContent(
            error="No text content found in the file. The file may be empty or contain only images."
        )

    logger.debug(f"Extracted {len(text)} chars")
    return text
