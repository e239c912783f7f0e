"""
main.py: Astro Lite backend
===========================
Notes:
- Thin web layer around the offline rules engine in astrology.py:
  - / (index page) renders the form, current profile and daily note
  - /profile builds a profile from validated birth fields
  - /ask answers a question, rule-based or via OpenAI (oracle.py)
  - /settings stores the answer mode and the user's API key
  - /export/json and /export/pdf download the current profile
- The session cookie is the only storage: it holds the current profile,
  the settings and the last answer until /reset.
"""

import os
import traceback
from datetime import date, datetime
from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError
from starlette.middleware.sessions import SessionMiddleware

from astrology import (
    AstroProfile,
    MalformedDateError,
    chinese_zodiac_from_year,
    daily_message,
    element_hint,
    get_sun_sign,
    life_path_from_date,
    profile_from_birth,
)
from oracle import DEFAULT_MODE, OracleError, MissingApiKeyError, answer_question
from report import profile_to_json, render_profile_pdf, report_filename
from schemas import AskForm, BirthForm, SettingsForm, validation_messages

# ============================================================
# CONFIG
# ============================================================

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
TEMPLATES_DIR = os.path.join(BASE_DIR, "templates")
STATIC_DIR = os.path.join(BASE_DIR, "static")
SECRET_KEY = os.environ.get("ASTRO_SECRET_KEY", "astro-lite-dev-secret")
HOST = os.environ.get("ASTRO_HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT") or os.environ.get("ASTRO_PORT") or "8000")
MAX_ERROR_EVENTS = 100

app = FastAPI(title="Astro Lite", debug=False)
app.add_middleware(SessionMiddleware, secret_key=SECRET_KEY)

# CORS: `ALLOWED_ORIGINS` (comma-separated) or `ASTRO_ALLOW_ALL_ORIGINS=true`
ALLOW_ALL_ORIGINS = os.environ.get("ASTRO_ALLOW_ALL_ORIGINS", "false").lower() in ("1", "true", "yes")
allowed_env = os.environ.get("ALLOWED_ORIGINS")
if ALLOW_ALL_ORIGINS:
    origins = ["*"]
elif allowed_env:
    origins = [o.strip() for o in allowed_env.split(",") if o.strip()]
else:
    origins = ["http://localhost:8000", "http://127.0.0.1:8000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
print(f"[main] CORS allowed origins: {origins}")

app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")
templates = Jinja2Templates(directory=TEMPLATES_DIR)

analytics_data = {
    "profiles_generated": 0,
    "sign_counter": {},
    "questions_by_mode": {},
    "error_events": [],
}

# ============================================================
# Logging helpers
# ============================================================
def log_debug(msg: str):
    print(f"[{datetime.now().isoformat()}] DEBUG: {msg}")

def log_error(msg: str):
    print(f"[{datetime.now().isoformat()}] ERROR: {msg}")
    events = analytics_data["error_events"]
    events.append({
        "timestamp": datetime.now().isoformat(),
        "message": str(msg)[:1000]
    })
    del events[:-MAX_ERROR_EVENTS]

# ============================================================
# Session helpers
# ============================================================
def get_session_profile(request: Request) -> Optional[AstroProfile]:
    data = request.session.get("profile")
    if not data:
        return None
    try:
        return AstroProfile.from_dict(data)
    except (KeyError, TypeError):
        log_debug("discarding unreadable session profile")
        request.session.pop("profile", None)
        return None

def set_session_profile(request: Request, profile: AstroProfile):
    request.session["profile"] = profile.to_dict()
    request.session.pop("last_answer", None)
    request.session["last_activity"] = datetime.now().isoformat()

def clear_session_profile(request: Request):
    for k in ["profile", "last_answer", "last_activity"]:
        request.session.pop(k, None)

def get_settings(request: Request) -> dict:
    return {
        "mode": request.session.get("mode", DEFAULT_MODE),
        "api_key": request.session.get("api_key", ""),
    }

# ============================================================
# General helpers
# ============================================================
def today_iso() -> str:
    return date.today().isoformat()

def format_timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")

async def read_payload(request: Request) -> dict:
    """JSON body or form-encoded fields, as a plain dict."""
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        data = await request.json()
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
    else:
        form = await request.form()
        data = {k: v for k, v in form.items()}
    # accept the camelCase name used by older clients
    if "tzOffset" in data and "tz_offset" not in data:
        data["tz_offset"] = data.pop("tzOffset")
    return data

def update_analytics(profile: AstroProfile):
    analytics_data["profiles_generated"] += 1
    analytics_data["sign_counter"].setdefault(profile.sun_sign, 0)
    analytics_data["sign_counter"][profile.sun_sign] += 1

def count_question(mode: str):
    analytics_data["questions_by_mode"].setdefault(mode, 0)
    analytics_data["questions_by_mode"][mode] += 1

def no_profile_response() -> JSONResponse:
    return JSONResponse({"error": "Generate your profile first."}, status_code=404)

# ============================================================
# ROUTES: pages
# ============================================================

@app.get("/", response_class=HTMLResponse)
async def landing(request: Request):
    try:
        profile = get_session_profile(request)
        daily = daily_message(profile.name, today_iso()) if profile else None
        return templates.TemplateResponse(request, "index.html", {
            "profile": profile,
            "daily": daily,
            "answer": request.session.get("last_answer"),
            "settings": get_settings(request),
        })
    except Exception:
        log_error(f"landing() failure: {traceback.format_exc()}")
        return HTMLResponse("<h1>Astro Lite</h1><p>Landing page error.</p>", status_code=500)

# ============================================================
# ROUTES: profile & daily message
# ============================================================

@app.post("/profile", response_class=JSONResponse)
async def create_profile(request: Request):
    try:
        try:
            data = await read_payload(request)
            form = BirthForm(**data)
        except ValidationError as e:
            return JSONResponse({"errors": validation_messages(e)}, status_code=400)
        except ValueError as e:
            return JSONResponse({"errors": [str(e)]}, status_code=400)

        profile = profile_from_birth(form.to_birth_input())
        set_session_profile(request, profile)
        update_analytics(profile)
        log_debug(f"profile generated: {profile.sun_sign}, life path {profile.life_path}")

        return JSONResponse({
            "profile": profile.to_dict(),
            "daily_message": daily_message(profile.name, today_iso()),
            "timestamp": format_timestamp()
        })
    except MalformedDateError as e:
        return JSONResponse({"errors": [str(e)]}, status_code=400)
    except Exception:
        log_error(f"create_profile() crash: {traceback.format_exc()}")
        return JSONResponse({"error": "Failed to generate profile."}, status_code=500)

@app.get("/profile", response_class=JSONResponse)
async def current_profile(request: Request):
    profile = get_session_profile(request)
    if profile is None:
        return no_profile_response()
    return JSONResponse({"profile": profile.to_dict()})

@app.get("/daily", response_class=JSONResponse)
async def daily(request: Request, name: Optional[str] = None,
                day: Optional[str] = Query(None, alias="date")):
    if not name:
        profile = get_session_profile(request)
        if profile is None:
            return JSONResponse({"error": "Pass a name or generate your profile first."}, status_code=400)
        name = profile.name
    day = day or today_iso()
    return JSONResponse({"name": name, "date": day, "message": daily_message(name, day)})

# ============================================================
# ROUTES: questions & settings
# ============================================================

@app.post("/ask", response_class=JSONResponse)
async def ask(request: Request):
    profile = get_session_profile(request)
    if profile is None:
        return no_profile_response()
    try:
        data = await read_payload(request)
        form = AskForm(question=str(data.get("question", "")).strip())
    except ValidationError:
        return JSONResponse({"error": "Type a question."}, status_code=400)
    except ValueError as e:
        return JSONResponse({"error": str(e)}, status_code=400)

    settings = get_settings(request)
    try:
        answer = answer_question(form.question, profile, settings["mode"], settings["api_key"])
    except MissingApiKeyError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    except OracleError as e:
        log_error(f"ask() upstream failure: {e}")
        return JSONResponse({"error": f"Error: {e}"}, status_code=502)
    except Exception:
        log_error(f"ask() crash: {traceback.format_exc()}")
        return JSONResponse({"error": "Failed to answer question."}, status_code=500)

    count_question(settings["mode"])
    request.session["last_answer"] = answer
    return JSONResponse({"answer": answer, "mode": settings["mode"], "timestamp": format_timestamp()})

@app.get("/settings", response_class=JSONResponse)
async def read_settings(request: Request):
    settings = get_settings(request)
    return JSONResponse({"mode": settings["mode"], "has_api_key": bool(settings["api_key"])})

@app.post("/settings", response_class=JSONResponse)
async def update_settings(request: Request):
    try:
        data = await read_payload(request)
        form = SettingsForm(**data)
    except ValidationError as e:
        return JSONResponse({"errors": validation_messages(e)}, status_code=400)
    except ValueError as e:
        return JSONResponse({"errors": [str(e)]}, status_code=400)

    request.session["mode"] = form.mode
    # an omitted key leaves the stored one alone; an empty string clears it
    if form.api_key is not None:
        if form.api_key.strip():
            request.session["api_key"] = form.api_key.strip()
        else:
            request.session.pop("api_key", None)
    settings = get_settings(request)
    return JSONResponse({"mode": settings["mode"], "has_api_key": bool(settings["api_key"])})

# ============================================================
# ROUTES: export
# ============================================================

@app.get("/export/json")
async def export_json(request: Request):
    profile = get_session_profile(request)
    if profile is None:
        return no_profile_response()
    filename = report_filename(profile.name, "json")
    return Response(
        content=profile_to_json(profile),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

@app.get("/export/pdf")
async def export_pdf(request: Request):
    profile = get_session_profile(request)
    if profile is None:
        return no_profile_response()
    try:
        pdf_bytes = render_profile_pdf(
            profile,
            daily=daily_message(profile.name, today_iso()),
            answer=request.session.get("last_answer"),
        )
    except Exception:
        log_error(f"export_pdf() crash: {traceback.format_exc()}")
        return JSONResponse({"error": "Failed to render PDF."}, status_code=500)
    filename = report_filename(profile.name, "pdf")
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

# ============================================================
# Astrology helper / analytics / debug
# ============================================================

@app.get("/astrology/{birthdate}", response_class=JSONResponse)
async def get_astrology(birthdate: str):
    try:
        sign, element, modality = get_sun_sign(birthdate)
        return JSONResponse({
            "sign": sign,
            "element": element,
            "modality": modality,
            "life_path": life_path_from_date(birthdate),
            "chinese_animal": chinese_zodiac_from_year(birthdate),
            "hint": element_hint(element),
        })
    except MalformedDateError as e:
        return JSONResponse({"error": str(e)}, status_code=400)

@app.get("/analytics", response_class=JSONResponse)
async def analytics():
    return JSONResponse({
        "profiles_generated": analytics_data["profiles_generated"],
        "sign_distribution": analytics_data["sign_counter"],
        "questions_by_mode": analytics_data["questions_by_mode"],
        "recent_errors": analytics_data["error_events"][-10:],
    })

@app.get("/debug/session", response_class=JSONResponse)
async def debug_session(request: Request):
    profile = get_session_profile(request)
    settings = get_settings(request)
    return JSONResponse({
        "profile": profile.to_dict() if profile else None,
        "mode": settings["mode"],
        "has_api_key": bool(settings["api_key"]),
        "last_activity": request.session.get("last_activity"),
    })

@app.get("/reset", response_class=JSONResponse)
async def reset_session(request: Request):
    clear_session_profile(request)
    return JSONResponse({"message": "Session cleared."})

# ============================================================
# Startup / Shutdown
# ============================================================
@app.on_event("startup")
async def startup_event():
    log_debug("Astro Lite backend starting...")
    if not os.path.isdir(TEMPLATES_DIR):
        log_error(f"templates directory missing at expected path: {TEMPLATES_DIR}")

@app.on_event("shutdown")
async def shutdown_event():
    log_debug("Astro Lite backend shutting down...")

# ============================================================
# Error handlers
# ============================================================
@app.exception_handler(404)
async def not_found_handler(request: Request, exc):
    return JSONResponse({"error": f"Endpoint not found: {request.url.path}"}, status_code=404)

@app.exception_handler(500)
async def internal_error_handler(request: Request, exc):
    log_error(f"500 error on {request.method} {request.url.path}: {traceback.format_exc()}")
    return JSONResponse({"error": "Internal server error"}, status_code=500)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host=HOST, port=PORT)
