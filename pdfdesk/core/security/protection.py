"""
Password protection and removal.

Two deliberately separate operations:

* :func:`encrypt_document` - real AES-256 encryption; the file cannot be
  opened without the password.
* :func:`apply_protection_watermark` - visual marking only. Anyone can still
  open, copy and edit the file. Callers must present it as such.

Neither falls back to the other.
"""
import logging
import secrets
from dataclasses import dataclass
from typing import List, Optional

import fitz  # PyMuPDF

from ..document import open_pdf
from ..errors import DocumentError, ParseError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 4

WRITABLE_METADATA = ("title", "author", "subject", "keywords", "creator",
                     "producer", "creationDate", "modDate")


@dataclass
class ProtectionPermissions:
    """What a reader may do without the owner password."""

    printing: bool = True
    copying: bool = True
    modifying: bool = False

    def to_flags(self) -> int:
        flags = fitz.PDF_PERM_ACCESSIBILITY
        if self.printing:
            flags |= fitz.PDF_PERM_PRINT | fitz.PDF_PERM_PRINT_HQ
        if self.copying:
            flags |= fitz.PDF_PERM_COPY
        if self.modifying:
            flags |= (fitz.PDF_PERM_MODIFY | fitz.PDF_PERM_ANNOTATE
                      | fitz.PDF_PERM_FORM | fitz.PDF_PERM_ASSEMBLE)
        return flags

    def restrictions(self):
        """Human readable list of what is not allowed."""
        names = []
        if not self.printing:
            names.append("No printing")
        if not self.copying:
            names.append("No copying")
        if not self.modifying:
            names.append("No modifying")
        return names

    def to_dict(self):
        return {"printing": self.printing, "copying": self.copying,
                "modifying": self.modifying}


def _check_password(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise DocumentError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )


def encrypt_document(data: bytes, user_password: str,
                     owner_password: Optional[str] = None,
                     permissions: Optional[ProtectionPermissions] = None) -> bytes:
    """
    Encrypt a PDF with AES-256.

    Args:
        data: Source PDF bytes
        user_password: Password needed to open the document
        owner_password: Password granting full rights; a random one is
            generated when omitted, so the permissions cannot be bypassed
            with the user password
        permissions: Rights granted with the user password

    Returns:
        Encrypted PDF bytes
    """
    _check_password(user_password)
    permissions = permissions or ProtectionPermissions()
    owner_password = owner_password or secrets.token_urlsafe(24)

    doc = open_pdf(data, error_cls=DocumentError)
    try:
        output = doc.tobytes(
            garbage=4,
            deflate=True,
            encryption=fitz.PDF_ENCRYPT_AES_256,
            owner_pw=owner_password,
            user_pw=user_password,
            permissions=permissions.to_flags(),
        )
    finally:
        doc.close()
    logger.info("Encrypted document with AES-256")
    return output


def apply_protection_watermark(data: bytes,
                               permissions: Optional[ProtectionPermissions] = None,
                               label: str = "Protected by PDFDesk") -> bytes:
    """
    Mark every page as protected WITHOUT encrypting anything.

    Adds a "PROTECTED" badge, a faint diagonal label and a line listing the
    restrictions. The content stays readable and editable by anyone.
    """
    permissions = permissions or ProtectionPermissions()
    doc = open_pdf(data, error_cls=DocumentError)
    try:
        helv = fitz.Font("helv")
        bold = fitz.Font("hebo")
        restrictions = permissions.restrictions()
        for page in doc:
            _stamp_page(page, label, restrictions, helv, bold)

        metadata = {key: value for key, value in (doc.metadata or {}).items()
                    if key in WRITABLE_METADATA and value}
        metadata["subject"] = "Watermark-only protection (not encrypted)"
        doc.set_metadata(metadata)
        logger.warning("Applied watermark-only protection: the document is NOT encrypted")
        return doc.tobytes(garbage=4, deflate=True)
    finally:
        doc.close()


def _stamp_page(page: fitz.Page, label: str, restrictions: List[str],
                helv: fitz.Font, bold: fitz.Font) -> None:
    w, h = page.rect.width, page.rect.height

    # Badge, top-right
    badge = fitz.Rect(w - 110, 15, w - 10, 35)
    page.draw_rect(badge, color=(0.2, 0.5, 0.2), fill=(0.95, 0.95, 0.95),
                   width=1, fill_opacity=0.8)
    tw = fitz.TextWriter(page.rect)
    tw.append((w - 100, 29), "PROTECTED", font=bold, fontsize=10)
    tw.write_text(page, color=(0.2, 0.5, 0.2), opacity=0.9)

    # Faint diagonal label across the page
    length = helv.text_length(label, fontsize=40)
    center = fitz.Point(w / 2, h / 2)
    tw = fitz.TextWriter(page.rect)
    tw.append((center.x - length / 2, center.y), label, font=helv, fontsize=40)
    tw.write_text(page, color=(0.9, 0.9, 0.9), opacity=0.1,
                  morph=(center, fitz.Matrix(1, 0, 0, 1, 0, 0).prerotate(-45)))

    if restrictions:
        tw = fitz.TextWriter(page.rect)
        tw.append((10, h - 10), "Restrictions: " + " | ".join(restrictions),
                  font=helv, fontsize=8)
        tw.write_text(page, color=(0.6, 0.6, 0.6), opacity=0.7)


def unlock(data: bytes, password: Optional[str] = None) -> bytes:
    """
    Remove encryption from a PDF.

    Raises:
        ParseError: If the password is missing or wrong
    """
    doc = open_pdf(data, password)
    try:
        output = doc.tobytes(garbage=4, deflate=True, encryption=fitz.PDF_ENCRYPT_NONE)
    finally:
        doc.close()
    logger.info("Removed encryption from document")
    return output


def is_encrypted(data: bytes) -> bool:
    """Check whether a PDF needs a password to open."""
    try:
        doc = fitz.open(stream=bytes(data), filetype="pdf")
    except (RuntimeError, ValueError) as e:
        raise ParseError(f"Failed to load PDF: {e}") from e
    try:
        return bool(doc.needs_pass)
    finally:
        doc.close()
