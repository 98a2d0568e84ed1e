from __future__ import annotations

import calendar
from datetime import date
from pathlib import Path
from typing import Any

from studycal import (
    CalendarFilters,
    StudyStore,
    format_elapsed,
    format_minutes,
    holidays_in_month,
    month_grid,
    monthly_stats,
    open_store,
    parse_date_key,
    setup_logging,
    weekly_stats,
    workspace_root as _workspace_root,
)
from studycal.store import export_filename
from studycal.timeutil import shift_month

ASSET_V = "20250601-01"
from fastapi import FastAPI, File, Form, Depends, HTTPException, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi import Body

WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


# ── HTML helpers ──────────────────────────────────────────────

def _escape(s: str) -> str:
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def _day_key_or_400(date_key: str) -> str:
    try:
        parse_date_key(date_key)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {date_key}")
    return date_key


def _filters_from_query(q: str, notes_only: bool, completed_only: bool, time_logged_only: bool) -> CalendarFilters:
    return CalendarFilters(
        search_query=q,
        notes_only=notes_only,
        completed_only=completed_only,
        time_logged_only=time_logged_only,
    )


# ── Store wiring ──────────────────────────────────────────────

setup_logging()

app = FastAPI(title="Study Calendar", version="0.1.0")

static_dir = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

_stores: dict[Path, StudyStore] = {}


def get_store() -> StudyStore:
    """One store per workspace root for the lifetime of the process."""
    root = _workspace_root()
    if root not in _stores:
        _stores[root] = open_store(root)
    return _stores[root]


# ── Pages ─────────────────────────────────────────────────────

@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"ok": "true"}


@app.get("/", response_class=HTMLResponse)
def index(
    year: int | None = None,
    month: int | None = None,
    q: str = "",
    notes_only: bool = False,
    completed_only: bool = False,
    time_logged_only: bool = False,
    store: StudyStore = Depends(get_store),
) -> HTMLResponse:
    today = store.today()
    year = year or today.year
    month = month or today.month
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail=f"Invalid month: {month}")

    filters = _filters_from_query(q, notes_only, completed_only, time_logged_only)
    totals = store.compute_totals(today)
    entries = store.month_entries(year, month)

    rows = []
    for week in month_grid(year, month):
        cells = []
        for d in week:
            if d.month != month:
                cells.append('<td class="outside"></td>')
                continue
            entry = entries[d.isoformat()]
            classes = ["day"]
            if entry.crossed:
                classes.append("crossed")
            if entry.holiday:
                classes.append("holiday")
            if d == today:
                classes.append("today")
            if filters.is_active() and not filters.matches(entry):
                classes.append("dimmed")
            badges = []
            if entry.holiday:
                badges.append(f'<div class="badge holiday">{_escape(entry.holiday)}</div>')
            if entry.minutes > 0:
                badges.append(f'<div class="badge time">{format_minutes(entry.minutes)}</div>')
            if entry.is_timer_running:
                badges.append('<div class="badge running">running</div>')
            if entry.note:
                badges.append(f'<div class="note small">{_escape(entry.note[:40])}</div>')
            cells.append(
                f'<td class="{" ".join(classes)}"><a href="/day/{d.isoformat()}">'
                f'<div class="num">{d.day}</div>{"".join(badges)}</a></td>'
            )
        rows.append("<tr>" + "".join(cells) + "</tr>")

    prev_y, prev_m = shift_month(year, month, -1)
    next_y, next_m = shift_month(year, month, 1)
    holiday_list = "".join(
        f"<li>{_escape(h.date)} {_escape(h.name)}</li>" for h in holidays_in_month(year, month)
    )

    html = f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>Study Calendar</title>
  <link rel="stylesheet" href="/static/style.css?v={ASSET_V}" />
</head>
<body>
  <div class="container">
    <header class="top">
      <h1>{calendar.month_name[month]} {year}</h1>
      <nav>
        <a href="/?year={prev_y}&month={prev_m}">&larr;</a>
        <a href="/">Today</a>
        <a href="/?year={next_y}&month={next_m}">&rarr;</a>
      </nav>
    </header>

    <section class="card totals">
      <span>This week: <b>{format_minutes(totals.weekly_minutes)}</b></span>
      <span>This month: <b>{format_minutes(totals.monthly_minutes)}</b></span>
      <span>All time: <b>{format_minutes(totals.total_minutes)}</b></span>
    </section>

    <form class="card filters" method="get" action="/">
      <input type="hidden" name="year" value="{year}" />
      <input type="hidden" name="month" value="{month}" />
      <input type="text" name="q" placeholder="Search notes and holidays" value="{_escape(q)}" />
      <label><input type="checkbox" name="notes_only" value="true" {"checked" if notes_only else ""} /> Notes only</label>
      <label><input type="checkbox" name="completed_only" value="true" {"checked" if completed_only else ""} /> Completed only</label>
      <label><input type="checkbox" name="time_logged_only" value="true" {"checked" if time_logged_only else ""} /> Time logged only</label>
      <button type="submit">Filter</button>
    </form>

    <table class="calendar">
      <thead><tr>{"".join(f"<th>{d}</th>" for d in WEEKDAYS)}</tr></thead>
      <tbody>{"".join(rows)}</tbody>
    </table>

    {f'<section class="card"><h2>Holidays</h2><ul>{holiday_list}</ul></section>' if holiday_list else ""}

    <section class="card">
      <a href="/api/export">Export backup</a>
      <form method="post" action="/import" enctype="multipart/form-data">
        <input type="file" name="file" accept=".json" />
        <button type="submit">Import</button>
      </form>
    </section>
  </div>
</body>
</html>"""
    return HTMLResponse(html)


@app.get("/day/{date_key}", response_class=HTMLResponse)
def day_page(date_key: str, store: StudyStore = Depends(get_store)) -> HTMLResponse:
    _day_key_or_400(date_key)
    entry = store.get_entry(date_key)
    d = date.fromisoformat(date_key)
    title = f"{calendar.day_name[d.weekday()]}, {calendar.month_name[d.month]} {d.day}, {d.year}"

    if entry.is_timer_running:
        timer_html = f"""
        <div id="timer" class="mono" data-start="{entry.timer_start}">{format_elapsed(store.elapsed_seconds(date_key))}</div>
        <button name="action" value="stop_timer">Stop timer</button>"""
    else:
        timer_html = '<button name="action" value="start_timer">Start timer</button>'

    html = f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <title>Study Session - {_escape(title)}</title>
  <link rel="stylesheet" href="/static/style.css?v={ASSET_V}" />
</head>
<body>
  <div class="container">
    <header class="top">
      <h1>{_escape(title)}</h1>
      <a href="/?year={d.year}&month={d.month}">Back to calendar</a>
    </header>
    {f'<div class="card holiday">{_escape(entry.holiday)}</div>' if entry.holiday else ""}
    <form class="card" method="post" action="/day/{date_key}">
      <button name="action" value="toggle">{"Completed ✓" if entry.crossed else "Mark as completed"}</button>

      <h2>Time: {format_minutes(entry.minutes)}</h2>
      {timer_html}
      <div class="row">
        <input type="text" name="minutes" placeholder="minutes" />
        <button name="action" value="add_minutes">Add</button>
        <button name="action" value="subtract_minutes">Subtract</button>
      </div>

      <h2>Notes</h2>
      <textarea name="note" rows="6">{_escape(entry.note)}</textarea>
      <button name="action" value="save_note">Save note</button>
    </form>
  </div>
  <script src="/static/timer.js?v={ASSET_V}"></script>
</body>
</html>"""
    return HTMLResponse(html)


@app.post("/day/{date_key}")
def day_action(
    date_key: str,
    action: str = Form(...),
    minutes: str = Form(""),
    note: str = Form(""),
    store: StudyStore = Depends(get_store),
) -> RedirectResponse:
    _day_key_or_400(date_key)
    if action == "toggle":
        store.toggle_completed(date_key)
    elif action == "start_timer":
        store.start_timer(date_key)
    elif action == "stop_timer":
        store.stop_timer(date_key)
    elif action == "add_minutes":
        store.add_minutes(date_key, minutes)
    elif action == "subtract_minutes":
        store.subtract_minutes(date_key, minutes)
    elif action == "save_note":
        store.set_note(date_key, note)
    else:
        raise HTTPException(status_code=400, detail=f"Unknown action: {action}")
    return RedirectResponse(url=f"/day/{date_key}", status_code=303)


@app.post("/import")
async def import_page(file: UploadFile = File(...), store: StudyStore = Depends(get_store)) -> RedirectResponse:
    content = await file.read()
    if not store.import_snapshot(content):
        raise HTTPException(status_code=400, detail="Invalid backup file")
    return RedirectResponse(url="/", status_code=303)


# ── JSON API ──────────────────────────────────────────────────

@app.get("/api/entries")
def api_list_entries(
    q: str = "",
    notes_only: bool = False,
    completed_only: bool = False,
    time_logged_only: bool = False,
    store: StudyStore = Depends(get_store),
) -> dict[str, Any]:
    """Stored entries, optionally filtered."""
    filters = _filters_from_query(q, notes_only, completed_only, time_logged_only)
    entries = store.entries(filters if filters.is_active() else None)
    return {"count": len(entries), "entries": [e.to_view() for e in entries]}


@app.get("/api/entries/{date_key}")
def api_get_entry(date_key: str, store: StudyStore = Depends(get_store)) -> dict[str, Any]:
    _day_key_or_400(date_key)
    return store.get_entry(date_key).to_view()


@app.patch("/api/entries/{date_key}")
def api_update_entry(
    date_key: str,
    payload: dict[str, Any] = Body(...),
    store: StudyStore = Depends(get_store),
) -> dict[str, Any]:
    """Shallow-merge crossed / note / minutes into one day."""
    _day_key_or_400(date_key)
    try:
        entry = store.update_entry(date_key, **payload)
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"ok": True, "saved": store.last_save_ok, "entry": entry.to_view()}


@app.post("/api/entries/{date_key}/toggle")
def api_toggle(date_key: str, store: StudyStore = Depends(get_store)) -> dict[str, Any]:
    _day_key_or_400(date_key)
    entry = store.toggle_completed(date_key)
    return {"ok": True, "saved": store.last_save_ok, "entry": entry.to_view()}


@app.post("/api/entries/{date_key}/timer/start")
def api_timer_start(date_key: str, store: StudyStore = Depends(get_store)) -> dict[str, Any]:
    _day_key_or_400(date_key)
    entry = store.start_timer(date_key)
    return {"ok": True, "saved": store.last_save_ok, "entry": entry.to_view()}


@app.post("/api/entries/{date_key}/timer/stop")
def api_timer_stop(date_key: str, store: StudyStore = Depends(get_store)) -> dict[str, Any]:
    _day_key_or_400(date_key)
    added = store.stop_timer(date_key)
    return {"ok": True, "added": added, "saved": store.last_save_ok, "entry": store.get_entry(date_key).to_view()}


@app.get("/api/entries/{date_key}/timer")
def api_timer_current(date_key: str, store: StudyStore = Depends(get_store)) -> dict[str, Any]:
    """Elapsed time for the display tick."""
    _day_key_or_400(date_key)
    seconds = store.elapsed_seconds(date_key)
    return {
        "running": store.get_entry(date_key).is_timer_running,
        "elapsed_seconds": seconds,
        "label": format_elapsed(seconds),
    }


@app.post("/api/entries/{date_key}/minutes/add")
def api_add_minutes(
    date_key: str,
    payload: dict[str, Any] = Body(...),
    store: StudyStore = Depends(get_store),
) -> dict[str, Any]:
    _day_key_or_400(date_key)
    entry = store.add_minutes(date_key, payload.get("minutes", ""))
    return {"ok": entry is not None, "saved": store.last_save_ok, "entry": store.get_entry(date_key).to_view()}


@app.post("/api/entries/{date_key}/minutes/subtract")
def api_subtract_minutes(
    date_key: str,
    payload: dict[str, Any] = Body(...),
    store: StudyStore = Depends(get_store),
) -> dict[str, Any]:
    _day_key_or_400(date_key)
    entry = store.subtract_minutes(date_key, payload.get("minutes", ""))
    return {"ok": entry is not None, "saved": store.last_save_ok, "entry": store.get_entry(date_key).to_view()}


@app.get("/api/totals")
def api_totals(date: str | None = None, store: StudyStore = Depends(get_store)) -> dict[str, Any]:
    """Weekly / monthly / total minutes for a reference date (default today)."""
    reference = None
    if date:
        try:
            reference = parse_date_key(date)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid date: {date}")
    return store.compute_totals(reference).to_dict()


@app.get("/api/stats")
def api_stats(store: StudyStore = Depends(get_store)) -> dict[str, Any]:
    data = store.data
    return {
        "weekly": [s.to_dict() for s in weekly_stats(data)],
        "monthly": [s.to_dict() for s in monthly_stats(data)],
    }


@app.get("/api/export")
def api_export(store: StudyStore = Depends(get_store)) -> Response:
    filename = export_filename(store.today())
    return Response(
        content=store.export_snapshot(),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.post("/api/import")
async def api_import(file: UploadFile = File(...), store: StudyStore = Depends(get_store)) -> dict[str, Any]:
    """Replace all data with an uploaded backup."""
    content = await file.read()
    if not store.import_snapshot(content):
        raise HTTPException(status_code=400, detail="Invalid backup file")
    return {"ok": True, "count": len(store.data)}
