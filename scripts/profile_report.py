import argparse
import os
import sys
from datetime import date

BASE = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, BASE)

from pydantic import ValidationError  # noqa: E402

from astrology import daily_message, profile_from_birth, qa_fallback  # noqa: E402
from report import render_profile_pdf, report_filename  # noqa: E402
from schemas import BirthForm, validation_messages  # noqa: E402

parser = argparse.ArgumentParser(description="Print an offline astro profile for one person.")
parser.add_argument("--name", required=True)
parser.add_argument("--date", required=True, help="YYYY-MM-DD")
parser.add_argument("--time", default="12:00", help="HH:MM (24h)")
parser.add_argument("--place", default="Unknown")
parser.add_argument("--tz", default="+05:30", help="e.g. +05:30")
parser.add_argument("--question", help="answer this with the rule-based router")
parser.add_argument("--pdf", metavar="DIR", help="also write the PDF report into DIR")
args = parser.parse_args()

try:
    form = BirthForm(name=args.name, date=args.date, time=args.time, place=args.place, tz_offset=args.tz)
except ValidationError as e:
    for msg in validation_messages(e):
        print('Invalid input:', msg)
    raise SystemExit(1)

profile = profile_from_birth(form.to_birth_input())
today = date.today().isoformat()
daily = daily_message(profile.name, today)

print('Name:          ', profile.name)
print('Sun sign:      ', f'{profile.sun_sign} ({profile.element}, {profile.modality})')
print('Life path:     ', profile.life_path)
print('Chinese zodiac:', profile.chinese_animal)
print('Lucky color:   ', profile.lucky_color)
print('Lucky number:  ', profile.lucky_number)
print()
print(profile.summary)
print('Daily note:', daily)

answer = None
if args.question:
    answer = qa_fallback(args.question, profile)
    print()
    print(answer)

if args.pdf:
    out = os.path.join(args.pdf, report_filename(profile.name, 'pdf'))
    with open(out, 'wb') as f:
        f.write(render_profile_pdf(profile, daily=daily, answer=answer))
    print('PDF saved to:', out)
