import json

import pytest
from pydantic import ValidationError

from astrology import BirthInput, profile_from_birth
from report import _latin1, profile_to_json, render_profile_pdf, report_filename
from schemas import BirthForm, validation_messages


def make_profile(name="Asha"):
    return profile_from_birth(BirthInput(name, "1990-01-01", "10:30", "Pune", "+05:30"))


def test_profile_json_export():
    profile = make_profile()
    data = json.loads(profile_to_json(profile))
    assert data["sun_sign"] == "Capricorn"
    assert data["life_path"] == 3
    assert data == profile.to_dict()


def test_pdf_export_is_a_pdf():
    pdf = render_profile_pdf(make_profile(), daily="Be curious.", answer="- one\n- two")
    assert isinstance(pdf, bytes)
    assert pdf.startswith(b"%PDF")


def test_pdf_export_handles_non_latin_names():
    pdf = render_profile_pdf(make_profile(name="Zoë राम \U0001F600"))
    assert pdf.startswith(b"%PDF")


def test_report_filename():
    assert report_filename("Asha K", "pdf") == "Astro_Report_AshaK.pdf"
    assert report_filename("", "json") == "Astro_Report_User.json"


def test_birth_form_defaults_and_conversion():
    form = BirthForm(name="Asha", date="1990-01-01", time="10:30", place="Pune")
    assert form.tz_offset == "+05:30"
    birth = form.to_birth_input()
    assert birth.date == "1990-01-01"
    assert birth.tz_offset == "+05:30"


def test_birth_form_messages():
    with pytest.raises(ValidationError) as exc:
        BirthForm(name="", date="1990/01/01", time="1030", place="", tz_offset="0530")
    assert validation_messages(exc.value) == [
        "Your name is required",
        "Use YYYY-MM-DD",
        "Use HH:MM (24h)",
        "Birth place is required",
        "e.g. +05:30",
    ]


def test_pdf_text_keeps_dashes_readable():
    assert _latin1("Rest fuels insight—balance doing with being.") == "Rest fuels insight-balance doing with being."
    assert _latin1("7–10 days, 50‑min chunks") == "7-10 days, 50-min chunks"
    assert _latin1("Zoë \U0001F600") == "Zoë ?"
