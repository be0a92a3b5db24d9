# certificates/rendering.py
"""
PDF rendering for issued certificates.

The renderer class is chosen by ``settings.CERTIFICATE_PDF_RENDERER`` so a
deployment can swap in an external rendering service.
"""
from __future__ import annotations

from pathlib import Path

from django.conf import settings
from django.utils.module_loading import import_string
from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfgen import canvas

from cores.models import PlatformSetting


class CertificateRenderer:
    def render(self, certificate, user, course) -> str:
        """Write the certificate artifact and return its path relative to MEDIA_ROOT."""
        raise NotImplementedError


class ReportLabCertificateRenderer(CertificateRenderer):
    directory = "certificates"

    def render(self, certificate, user, course) -> str:
        platform = PlatformSetting.load()
        file_name = f"certificate-{certificate.certificate_number}.pdf"
        relative_path = f"{self.directory}/{file_name}"
        target = Path(settings.MEDIA_ROOT) / self.directory / file_name
        target.parent.mkdir(parents=True, exist_ok=True)

        c = canvas.Canvas(str(target), pagesize=landscape(A4))
        w, h = landscape(A4)

        c.setFont("Helvetica-Bold", 36)
        c.setFillColorRGB(0.145, 0.388, 0.922)
        c.drawCentredString(w / 2, h - 110, "Certificate of Completion")

        c.setFillColorRGB(0, 0, 0)
        c.setFont("Helvetica", 16)
        c.drawCentredString(w / 2, h - 170, "This is to certify that")

        c.setFont("Helvetica-Bold", 30)
        c.drawCentredString(w / 2, h - 215, user.display_name)

        c.setFont("Helvetica", 16)
        c.drawCentredString(w / 2, h - 260, "has successfully passed the certification exam for")

        c.setFont("Helvetica-Bold", 22)
        c.drawCentredString(w / 2, h - 300, course.title)

        c.setFont("Helvetica", 13)
        c.setFillColorRGB(0.42, 0.45, 0.5)
        c.drawCentredString(w / 2, h - 350, f"Score: {certificate.score:.1f}%   Grade: {certificate.grade}")
        c.drawCentredString(w / 2, h - 370, f"Certificate Number: {certificate.certificate_number}")
        c.drawCentredString(w / 2, h - 390, f"Issued on: {certificate.issued_at:%d %B %Y}")
        c.drawCentredString(w / 2, h - 420, f"Verify at: {certificate.verification_url}")

        c.setFillColorRGB(0, 0, 0)
        c.setFont("Helvetica-Bold", 12)
        c.drawString(80, 90, platform.certificate_signer_name)
        c.setFont("Helvetica", 11)
        c.drawString(80, 74, platform.certificate_signer_title)

        c.showPage()
        c.save()
        return relative_path


def get_renderer() -> CertificateRenderer:
    return import_string(settings.CERTIFICATE_PDF_RENDERER)()
