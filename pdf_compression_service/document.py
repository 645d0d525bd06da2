"""
document.py - walk a PDF's page resources and swap in recompressed images.

Each page's /XObject resource table is scanned by name. Image XObjects are
decoded, normalized (see ``images.py``) and replaced at the same name with a
new JPEG stream. Form XObjects are descended into so images nested inside
them are handled too; their content streams are left untouched.
"""

import enum
import io
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Set, Tuple

import fitz  # PyMuPDF
import pikepdf
from pikepdf import Dictionary, Name, PdfImage, Stream
from PIL import Image

from .errors import ImageProcessingError, InvalidDocumentError
from .images import NormalizerSettings, normalize_image

logger = logging.getLogger(__name__)

ObjGen = Tuple[int, int]


class XObjectKind(enum.Enum):
    IMAGE = "image"
    FORM = "form"
    UNSUPPORTED = "unsupported"


def classify_xobject(obj: pikepdf.Object) -> XObjectKind:
    if not isinstance(obj, Stream):
        return XObjectKind.UNSUPPORTED
    subtype = obj.get(Name.Subtype)
    if subtype == Name.Image:
        return XObjectKind.IMAGE
    if subtype == Name.Form:
        return XObjectKind.FORM
    return XObjectKind.UNSUPPORTED


@dataclass
class CompressionResult:
    data: bytes
    page_count: int
    images_seen: int = 0
    images_resized: int = 0
    images_skipped: int = 0

    @property
    def size(self) -> int:
        return len(self.data)


def open_document(data: bytes) -> pikepdf.Pdf:
    try:
        return pikepdf.open(io.BytesIO(data))
    except pikepdf.PdfError as e:
        raise InvalidDocumentError(f"Could not load PDF: {e}") from e


class _FallbackDecoder:
    """
    Decodes image streams through MuPDF when pikepdf cannot (JBIG2, some
    CCITT variants, unusual colour spaces). The MuPDF document is opened
    lazily from the original upload, where object numbers still line up
    with pikepdf's.
    """

    def __init__(self, data: bytes):
        self._data = data
        self._doc: Optional[fitz.Document] = None

    def decode(self, xref: int) -> Image.Image:
        if self._doc is None:
            self._doc = fitz.open(stream=self._data, filetype="pdf")
        pix = fitz.Pixmap(self._doc, xref)
        if pix.colorspace is None:
            # stencil masks come back as a bare alpha plane
            return Image.frombytes("L", (pix.width, pix.height), pix.samples)
        if pix.alpha:
            pix = fitz.Pixmap(pix, 0)
        # PNG output only takes plain gray or RGB; Separation, DeviceN,
        # CMYK, Lab and ICC spaces all go through RGB
        if pix.colorspace.name not in (fitz.csGRAY.name, fitz.csRGB.name):
            pix = fitz.Pixmap(fitz.csRGB, pix)
        return Image.open(io.BytesIO(pix.tobytes("png")))

    def close(self) -> None:
        if self._doc is not None:
            self._doc.close()
            self._doc = None


def _page_resources(page: pikepdf.Page) -> Optional[Dictionary]:
    # /Resources may be inherited from an ancestor /Pages node
    node = page.obj
    while node is not None:
        resources = node.get(Name.Resources)
        if isinstance(resources, Dictionary):
            return resources
        node = node.get(Name.Parent)
    return None


class ImageNormalizer:
    """Replaces every image XObject reachable from a document's pages."""

    def __init__(
        self,
        pdf: pikepdf.Pdf,
        settings: Optional[NormalizerSettings] = None,
        isolate_failures: bool = False,
        fallback: Optional[_FallbackDecoder] = None,
    ):
        self.pdf = pdf
        self.settings = settings or NormalizerSettings()
        self.isolate_failures = isolate_failures
        self.fallback = fallback
        self.images_seen = 0
        self.images_resized = 0
        self.images_skipped = 0
        # original or replacement objgen -> object to put under the name
        self._replacements: Dict[ObjGen, pikepdf.Object] = {}
        self._visited_forms: Set[ObjGen] = set()

    def run(self) -> None:
        for page_number, page in enumerate(self.pdf.pages, start=1):
            resources = _page_resources(page)
            if resources is not None:
                self._walk_resources(resources, page_number)

    def _walk_resources(self, resources: Dictionary, page_number: int) -> None:
        xobjects = resources.get(Name.XObject)
        if not isinstance(xobjects, Dictionary):
            return

        for name in list(xobjects.keys()):
            xobj = xobjects[name]
            kind = classify_xobject(xobj)
            if kind is XObjectKind.IMAGE:
                xobjects[name] = self._replacement_for(xobj, name, page_number)
            elif kind is XObjectKind.FORM:
                if xobj.objgen in self._visited_forms:
                    continue
                self._visited_forms.add(xobj.objgen)
                logger.debug(f"Page {page_number}: descending into form object {name}")
                form_resources = xobj.get(Name.Resources)
                if isinstance(form_resources, Dictionary):
                    self._walk_resources(form_resources, page_number)
            else:
                logger.debug(f"Page {page_number}: leaving unsupported XObject {name} as is")

    def _replacement_for(self, xobj: Stream, name: str, page_number: int) -> pikepdf.Object:
        key = xobj.objgen
        if key in self._replacements:
            return self._replacements[key]

        self.images_seen += 1
        logger.info(f"Compressing image object {name} on page {page_number}")
        try:
            image = self._decode(xobj)
            normalized = normalize_image(image, self.settings)
        except Exception as e:
            if not self.isolate_failures:
                raise ImageProcessingError(page_number, name, e) from e
            logger.warning(f"Image {name} on page {page_number} left unchanged: {e}")
            self.images_skipped += 1
            self._replacements[key] = xobj
            return xobj

        if normalized.resized:
            self.images_resized += 1
        replacement = self.pdf.make_indirect(
            Stream(
                self.pdf,
                normalized.data,
                Dictionary({
                    "/Type": Name.XObject,
                    "/Subtype": Name.Image,
                    "/Width": normalized.width,
                    "/Height": normalized.height,
                    "/ColorSpace": Name.DeviceRGB,
                    "/BitsPerComponent": 8,
                    "/Filter": Name.DCTDecode,
                }),
            )
        )
        self._replacements[key] = replacement
        self._replacements[replacement.objgen] = replacement
        logger.debug(
            f"Image {name}: {normalized.width}x{normalized.height}, {normalized.size:,} bytes JPEG"
        )
        return replacement

    def _decode(self, xobj: Stream) -> Image.Image:
        try:
            image = PdfImage(xobj).as_pil_image()
        except Exception as e:
            if self.fallback is None:
                raise
            logger.debug(f"pikepdf could not extract image {xobj.objgen}, using MuPDF: {e}")
            return self.fallback.decode(xobj.objgen[0])

        smask = xobj.get(Name.SMask)
        if isinstance(smask, Stream):
            alpha = PdfImage(smask).as_pil_image()
            if alpha.size == image.size:
                image = image.convert("RGBA")
                image.putalpha(alpha.convert("L"))
        return image


def compress_pdf(
    data: bytes,
    settings: Optional[NormalizerSettings] = None,
    isolate_failures: bool = False,
) -> CompressionResult:
    """
    Recompress every embedded raster image of the PDF in ``data``.

    Args:
        data: The uploaded PDF
        settings: Resize box, JPEG quality and resampling filter
        isolate_failures: Leave a failing image untouched instead of aborting

    Returns:
        CompressionResult with the rewritten PDF bytes and per-image counts

    Raises:
        InvalidDocumentError: ``data`` is not a readable PDF
        ImageProcessingError: an image failed and ``isolate_failures`` is off
    """
    fallback = _FallbackDecoder(data)
    try:
        with open_document(data) as pdf:
            page_count = len(pdf.pages)
            logger.info(f"Loaded PDF document with {page_count} pages")

            normalizer = ImageNormalizer(pdf, settings, isolate_failures, fallback)
            normalizer.run()

            out = io.BytesIO()
            pdf.save(out)
    finally:
        fallback.close()

    return CompressionResult(
        data=out.getvalue(),
        page_count=page_count,
        images_seen=normalizer.images_seen,
        images_resized=normalizer.images_resized,
        images_skipped=normalizer.images_skipped,
    )
