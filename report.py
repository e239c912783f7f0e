"""Profile export: JSON and a one-page PDF report."""

import json
from datetime import date
from typing import Optional, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from astrology import AstroProfile, DEFAULT_COLOR

REPORT_TITLE = "Astro Lite Report"
DASHES = str.maketrans({"\u2011": "-", "\u2013": "-", "\u2014": "-"})


def _latin1(s) -> str:
    # core PDF fonts are latin-1 only
    return str(s).translate(DASHES).encode("latin-1", "replace").decode("latin-1")


def _safe(s) -> str:
    return _latin1(str(s).replace("\n", " "))


def _hex_to_rgb(color: str) -> Tuple[int, int, int]:
    value = (color or DEFAULT_COLOR).lstrip("#")
    if len(value) != 6:
        value = DEFAULT_COLOR.lstrip("#")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def report_filename(name: str, ext: str) -> str:
    safe = "".join(c for c in (name or "") if c.isalnum() or c in "_-") or "User"
    return f"Astro_Report_{safe}.{ext}"


def profile_to_json(profile: AstroProfile) -> str:
    return json.dumps(profile.to_dict(), indent=2, ensure_ascii=False)


def render_profile_pdf(profile: AstroProfile, daily: Optional[str] = None,
                       answer: Optional[str] = None, today: Optional[date] = None) -> bytes:
    """Render the profile (plus optional daily message and last answer) as PDF bytes."""
    today = today or date.today()
    pdf = FPDF(unit="pt", format="A4")
    pdf.set_title(REPORT_TITLE)
    pdf.set_margins(50, 50, 50)
    pdf.add_page()

    pdf.set_font("Helvetica", "B", 20)
    pdf.cell(0, 28, _safe(REPORT_TITLE), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font("Helvetica", "", 10)
    pdf.cell(0, 16, _safe(f"Generated {today.isoformat()}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(10)

    pdf.set_font("Helvetica", "B", 14)
    pdf.cell(0, 20, _safe(profile.name), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    rows = (
        ("Sun Sign", profile.sun_sign),
        ("Element", profile.element),
        ("Modality", profile.modality),
        ("Life Path", profile.life_path),
        ("Chinese Zodiac", profile.chinese_animal),
        ("Lucky Number", profile.lucky_number),
        ("Lucky Color", profile.lucky_color),
    )
    pdf.set_font("Helvetica", "", 12)
    for label, value in rows:
        pdf.set_font("Helvetica", "B", 12)
        pdf.cell(120, 18, _safe(label))
        pdf.set_font("Helvetica", "", 12)
        pdf.cell(0, 18, _safe(value), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    # swatch for the lucky color
    pdf.set_fill_color(*_hex_to_rgb(profile.lucky_color))
    pdf.rect(pdf.get_x(), pdf.get_y() + 4, 60, 14, style="F")
    pdf.ln(26)

    sections = [("Summary", profile.summary)]
    if daily:
        sections.append(("Today's message", daily))
    if answer:
        sections.append(("Guidance", answer))
    for heading, body in sections:
        pdf.set_font("Helvetica", "B", 13)
        pdf.cell(0, 20, _safe(heading), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_font("Helvetica", "", 11)
        pdf.multi_cell(0, 15, _latin1(body), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.ln(6)

    out = pdf.output()
    return bytes(out)
