"""Report file to text: PDF text layer, Tesseract OCR for images, UTF-8 otherwise."""
from __future__ import annotations

import io
import logging
from typing import Tuple

import pytesseract
from PIL import Image, UnidentifiedImageError
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from bloodwise import settings

logger = logging.getLogger("bloodwise")

SUPPORTED_IMAGE_EXT = {".png", ".jpg", ".jpeg", ".tiff", ".tif", ".bmp", ".webp"}

SAMPLE_REPORT_TEXT = (
    "COMPLETE BLOOD COUNT\n"
    "Hemoglobin: 14.2 g/dL (Ref: 13.5-17.5)\n"
    "WBC: 6.8 thousand/μL (Ref: 4.5-11.0)\n"
    "Platelets: 250 thousand/μL (Ref: 150-450)\n"
    "METABOLIC PANEL\n"
    "Glucose: 95 mg/dL (Ref: 70-99)\n"
    "Cholesterol: 180 mg/dL (Ref: <200)\n"
    "HDL: 55 mg/dL (Ref: >40)\n"
    "LDL: 110 mg/dL (Ref: <130)"
)


def _is_pdf(filename: str, content_type: str) -> bool:
    return content_type == "application/pdf" or filename.endswith(".pdf")


def _is_image(filename: str, content_type: str) -> bool:
    return content_type.startswith("image/") or any(filename.endswith(ext) for ext in SUPPORTED_IMAGE_EXT)


def extract_text_from_bytes(data: bytes, filename: str, content_type: str) -> Tuple[str, str]:
    """Return (text, source) where source is "pdf", "ocr" or "text".

    Raises ValueError when nothing usable comes out of the file. With
    USE_MOCK_DATA on, the file is ignored and the sample report comes back
    with source "mock".
    """
    if settings.USE_MOCK_DATA:
        logger.info({"function": "extract_text", "filename": filename, "mock": True})
        return SAMPLE_REPORT_TEXT, "mock"

    lowered = (filename or "").lower()
    mt = (content_type or "").lower()

    if _is_pdf(lowered, mt):
        try:
            reader = PdfReader(io.BytesIO(data))
            pages = [page.extract_text() or "" for page in reader.pages]
        except PdfReadError as exc:
            raise ValueError(f"Unreadable PDF: {exc}") from exc
        text = "\n".join(pages).strip()
        if not text:
            raise ValueError("No text extracted from PDF; scanned PDFs should be uploaded as images")
        return text, "pdf"

    if _is_image(lowered, mt):
        try:
            img = Image.open(io.BytesIO(data))
        except UnidentifiedImageError as exc:
            raise ValueError("Unsupported or corrupt image file") from exc
        text = pytesseract.image_to_string(img, lang="eng")
        if not text.strip():
            raise ValueError("OCR produced empty output")
        return text, "ocr"

    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ValueError("Unable to decode file as UTF-8 text") from exc
    if not text.strip():
        raise ValueError("Uploaded text file is empty")
    return text, "text"


__all__ = ["extract_text_from_bytes", "SUPPORTED_IMAGE_EXT", "SAMPLE_REPORT_TEXT"]
