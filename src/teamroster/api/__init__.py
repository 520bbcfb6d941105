"""REST API and registration page for the team roster."""

from __future__ import annotations

import json
import logging
import urllib.parse
from datetime import datetime
from html import escape
from pathlib import Path
from typing import Any, AsyncIterator, Mapping, Optional

from fastapi import FastAPI, Form, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response, StreamingResponse

from teamroster.api.schemas import PlayerPayload, PlayerResponse, RosterResponse
from teamroster.config.positions import SIZE_CHOICES, get_position_short_name, position_choices
from teamroster.controller import RegistrationController, RegistrationState
from teamroster.persistence import PersistenceError, PlayerNotFoundError, PlayerStore
from teamroster.roster.export import roster_to_csv
from teamroster.roster.sorting import SortState, parse_sort_state, toggle_sort
from teamroster.settings import Settings, load_settings


logger = logging.getLogger("uvicorn.error")

TABLE_COLUMNS: list[tuple[str, str]] = [
    ("name", "Name"),
    ("jersey_name", "Jersey Name"),
    ("number", "Number"),
    ("size", "Size"),
    ("position", "Position"),
]

FIELD_LABELS: Mapping[str, str] = {
    "name": "Full name",
    "jersey_name": "Name on the jersey",
    "number": "Jersey number",
    "size": "Jersey size",
    "position": "Position",
    "notes": "Notes",
}


def _parse_sort_or_400(sort_by: Optional[str], sort_direction: Optional[str]) -> Optional[SortState]:
    try:
        return parse_sort_state(sort_by, sort_direction)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _sort_query(state: Optional[SortState]) -> str:
    if state is None:
        return ""
    return urllib.parse.urlencode({"sort_by": state.field, "sort_direction": state.direction})


def _with_query(path: str, query: str) -> str:
    return f"{path}?{query}" if query else path


def _redirect_with(path: str, *, notice: str | None = None, error: str | None = None) -> RedirectResponse:
    params: dict[str, str] = {}
    if notice:
        params["notice"] = notice
    if error:
        params["error"] = error
    query = urllib.parse.urlencode(params)
    return RedirectResponse(_with_query(path, query), status_code=303)


def _snapshot_event(players: list[Any]) -> str:
    payload = [
        PlayerResponse.from_record(player).model_dump(mode="json", by_alias=True)
        for player in players
    ]
    return f"event: snapshot\ndata: {json.dumps(payload)}\n\n"


def _render_page(body: str, *, title: str) -> str:
    return f"""<!DOCTYPE html>
<html lang=\"en\">
<head>
    <meta charset=\"utf-8\">
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\">
    <title>{escape(title)}</title>
    <style>
        body {{ font-family: Arial, sans-serif; margin: 2rem; background: #f5f7fa; }}
        main {{ background: #fff; padding: 2rem; border-radius: 12px; box-shadow: 0 2px 6px rgba(0,0,0,0.08); max-width: 56rem; margin: 0 auto; }}
        h1, .count {{ text-align: center; }}
        nav a {{ margin-right: 1rem; color: #2563eb; text-decoration: none; }}
        form {{ display: grid; gap: 1rem; margin-bottom: 2rem; }}
        label {{ font-weight: 600; }}
        input[type=\"text\"], select, textarea {{ width: 100%; padding: 0.5rem; border-radius: 6px; border: 1px solid #cbd5e1; }}
        button, .button {{ padding: 0.6rem 1.2rem; border-radius: 6px; border: none; background: #2563eb; color: #fff; cursor: pointer; text-decoration: none; }}
        button.danger {{ background: #ef4444; }}
        .button.secondary {{ background: #475569; }}
        table {{ border-collapse: collapse; width: 100%; margin-top: 1rem; }}
        th, td {{ padding: 0.5rem; border: 1px solid #e2e8f0; text-align: left; white-space: nowrap; }}
        th a {{ color: #475569; text-decoration: none; text-transform: uppercase; font-size: 0.8rem; }}
        .flash {{ padding: 1rem; border-radius: 6px; margin-bottom: 1rem; }}
        .flash.success {{ background: #ecfdf5; color: #047857; }}
        .flash.error {{ background: #fef2f2; color: #b91c1c; }}
        .field-error {{ color: #ef4444; font-size: 0.875rem; margin: 0.25rem 0 0; white-space: pre-line; }}
        .dialog {{ border: 1px solid #e2e8f0; padding: 1.5rem; border-radius: 8px; background: #f8fafc; margin-bottom: 2rem; }}
        .empty {{ text-align: center; padding: 3rem 0; color: #6b7280; }}
        footer {{ text-align: center; color: #6b7280; font-size: 0.875rem; margin-top: 2rem; }}
    </style>
</head>
<body>
    <nav><a href=\"/ui\">Roster</a><a href=\"/ui/players/new\">Register</a></nav>
    <main>{body}</main>
</body>
</html>"""


def _flash_html(notice: str | None, error: str | None) -> str:
    parts = []
    if notice:
        parts.append(f"<div class=\"flash success\">{escape(notice)}</div>")
    if error:
        parts.append(f"<div class=\"flash error\">{escape(error)}</div>")
    return "".join(parts)


def _render_table(controller: RegistrationController) -> str:
    players = controller.visible_roster()
    if not players:
        return (
            "<div class=\"empty\"><p>No players registered yet.</p>"
            "<a class=\"button\" href=\"/ui/players/new\">Register your first player</a></div>"
        )

    current = controller.state.sort
    headers = []
    for field_name, label in TABLE_COLUMNS:
        next_state = toggle_sort(current, field_name)
        marker = ""
        if current is not None and current.field == field_name:
            marker = " ▲" if current.direction == "asc" else " ▼"
        href = _with_query("/ui", _sort_query(next_state))
        headers.append(f"<th><a href=\"{escape(href)}\">{label}{marker}</a></th>")
    headers.append("<th>Notes</th><th>Actions</th>")

    rows = "".join(
        f"<tr><td>{escape(player.name)}</td><td>{escape(player.jersey_name)}</td>"
        f"<td>{escape(player.number)}</td><td>{escape(player.size)}</td>"
        f"<td>{escape(get_position_short_name(player.position))}</td>"
        f"<td>{escape(player.notes or '-')}</td>"
        f"<td><a href=\"/ui/players/{player.id}/edit\">Edit</a> "
        f"<a href=\"/ui/players/{player.id}/delete\">Delete</a></td></tr>"
        for player in players
    )
    return (
        f"<table><thead><tr>{''.join(headers)}</tr></thead>"
        f"<tbody>{rows}</tbody></table>"
    )


def _render_form(controller: RegistrationController, *, autofill_mode: str) -> str:
    state = controller.state
    values = state.form
    errors = state.field_errors
    editing = state.editing_id is not None
    action = f"/ui/players/{state.editing_id}" if editing else "/ui/players"
    title = "Edit player" if editing else "Player information"
    submit_label = "Save changes" if editing else "Register"

    def _error(field_name: str) -> str:
        message = errors.get(field_name)
        return f"<p class=\"field-error\">{escape(message)}</p>" if message else ""

    def _text_input(field_name: str, placeholder: str) -> str:
        value = escape(getattr(values, field_name))
        return (
            f"<div><label for=\"{field_name}\">{FIELD_LABELS[field_name]}</label>"
            f"<input type=\"text\" id=\"{field_name}\" name=\"{field_name}\" value=\"{value}\" placeholder=\"{escape(placeholder)}\">"
            f"{_error(field_name)}</div>"
        )

    def _select(field_name: str, options: list[str], placeholder: str) -> str:
        current = getattr(values, field_name)
        option_html = [f"<option value=\"\">{escape(placeholder)}</option>"]
        for option in options:
            selected = " selected" if option == current else ""
            option_html.append(f"<option value=\"{escape(option)}\"{selected}>{escape(option)}</option>")
        return (
            f"<div><label for=\"{field_name}\">{FIELD_LABELS[field_name]}</label>"
            f"<select id=\"{field_name}\" name=\"{field_name}\">{''.join(option_html)}</select>"
            f"{_error(field_name)}</div>"
        )

    duplicate_html = (
        f"<p class=\"field-error\">{escape(state.duplicate_error)}</p>" if state.duplicate_error else ""
    )
    number_block = (
        f"<div><label for=\"number\">{FIELD_LABELS['number']}</label>"
        f"<input type=\"text\" id=\"number\" name=\"number\" value=\"{escape(values.number)}\" placeholder=\"1-99\">"
        f"{_error('number')}{duplicate_html}</div>"
    )
    notes_block = (
        f"<div><label for=\"notes\">{FIELD_LABELS['notes']}</label>"
        f"<textarea id=\"notes\" name=\"notes\" rows=\"3\" placeholder=\"Anything to add?\">{escape(values.notes)}</textarea>"
        f"{_error('notes')}</div>"
    )
    script = f"""
    <script>
    (function() {{
        const mode = {json.dumps(autofill_mode)};
        const nameInput = document.getElementById('name');
        const jerseyInput = document.getElementById('jersey_name');
        let edited = jerseyInput.value !== '';
        jerseyInput.addEventListener('input', () => {{ edited = jerseyInput.value !== ''; }});
        nameInput.addEventListener('input', () => {{
            const value = nameInput.value;
            if (!value.includes(' ')) return;
            if (mode !== 'always' && edited) return;
            const parts = value.trim().split(' ');
            jerseyInput.value = parts[parts.length - 1].toUpperCase();
        }});
    }})();
    </script>
    """
    return f"""
    <section class=\"dialog\">
        <h2>{title}</h2>
        <form method=\"post\" action=\"{action}\">
            {_text_input('name', 'First and last name')}
            {_text_input('jersey_name', 'Name printed on the back of the jersey')}
            {number_block}
            {_select('size', list(SIZE_CHOICES), 'Choose a size')}
            {_select('position', position_choices(), 'Choose a position')}
            {notes_block}
            <button type=\"submit\">{submit_label}</button>
            <a class=\"button secondary\" href=\"/ui\">Cancel</a>
        </form>
    </section>
    {script}
    """


def _render_delete_confirmation(controller: RegistrationController) -> str:
    player_id = controller.state.pending_delete_id
    if player_id is None:
        return ""
    player = controller.find_player(player_id)
    return f"""
    <section class=\"dialog\">
        <h2>Are you sure?</h2>
        <p>This action cannot be undone. This will permanently delete
        {escape(player.name)} (#{escape(player.number)}) from the registration list.</p>
        <form method=\"post\" action=\"/ui/players/{player_id}/delete\">
            <button type=\"submit\" class=\"danger\">Delete</button>
            <a class=\"button secondary\" href=\"/ui\">Cancel</a>
        </form>
    </section>
    """


def _render_roster_page(
    controller: RegistrationController,
    *,
    settings: Settings,
    notice: str | None = None,
    error: str | None = None,
) -> str:
    dialog_html = ""
    if controller.state.dialog_open:
        dialog_html = _render_form(controller, autofill_mode=settings.jersey_autofill)
    confirm_html = _render_delete_confirmation(controller)
    body = f"""
    <h1>{escape(settings.team_name)} - Jersey Registration</h1>
    <p class=\"count\">{controller.registered_count} players registered</p>
    {_flash_html(notice, error)}
    {dialog_html}
    {confirm_html}
    <section>
        <h2>Registered players</h2>
        {_render_table(controller)}
    </section>
    <footer>&copy; {datetime.now().year} {escape(settings.team_name)} Softball Team</footer>
    """
    return _render_page(body, title=f"{settings.team_name} - Jersey Registration")


def create_app(db_path: Path | str | None = None, settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(title="teamroster")
    store = PlayerStore(db_path or settings.db_path)
    app.state.player_store = store
    app.state.settings = settings

    def _controller(state: RegistrationState | None = None) -> RegistrationController:
        return RegistrationController(store, state, autofill_mode=settings.jersey_autofill)

    def _roster_response(state: Optional[SortState]) -> RosterResponse:
        with _controller(RegistrationState(sort=state)) as controller:
            players = controller.visible_roster()
        # count is the whole roster; the listing stops at list_limit rows.
        return RosterResponse(
            count=len(players),
            returned=min(len(players), settings.list_limit),
            sort_by=state.field if state else None,
            sort_direction=state.direction if state else None,
            players=[PlayerResponse.from_record(player) for player in players[: settings.list_limit]],
        )

    def _submit_or_raise(controller: RegistrationController, payload: PlayerPayload, *, merge: bool = False) -> str:
        values = payload.form_values()
        if merge:
            values = {**controller.state.form.as_dict(), **values}
        controller.load_form(values)
        controller.fill_missing_jersey_name()
        editing_id = controller.state.editing_id
        try:
            outcome = controller.submit()
        except PlayerNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Player not found") from exc
        except PersistenceError as exc:
            logger.error("Saving player failed: %s", exc)
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        if outcome.status == "invalid":
            raise HTTPException(status_code=422, detail={"errors": controller.state.field_errors})
        if outcome.status == "conflict":
            raise HTTPException(
                status_code=409,
                detail={"message": controller.state.duplicate_error, "number": controller.state.form.number},
            )
        return outcome.player_id or editing_id or ""

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/players", response_model=RosterResponse)
    async def list_players(
        sort_by: str | None = Query(None),
        sort_direction: str | None = Query(None),
    ) -> RosterResponse:
        return _roster_response(_parse_sort_or_400(sort_by, sort_direction))

    @app.get("/players/stream")
    async def stream_players(request: Request) -> StreamingResponse:
        async def events() -> AsyncIterator[str]:
            async for snapshot in store.feed.snapshots():
                if await request.is_disconnected():
                    break
                yield _snapshot_event(snapshot)

        return StreamingResponse(events(), media_type="text/event-stream")

    @app.get("/players/export.csv")
    async def export_players(
        sort_by: str | None = Query(None),
        sort_direction: str | None = Query(None),
    ) -> Response:
        sort_state = _parse_sort_or_400(sort_by, sort_direction)
        with _controller(RegistrationState(sort=sort_state)) as controller:
            csv_text = roster_to_csv(controller.visible_roster())
        return Response(
            content=csv_text,
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=roster.csv"},
        )

    @app.get("/players/{player_id}", response_model=PlayerResponse)
    async def get_player(player_id: str) -> PlayerResponse:
        player = store.get_player(player_id)
        if player is None:
            raise HTTPException(status_code=404, detail="Player not found")
        return PlayerResponse.from_record(player)

    @app.post("/players", response_model=PlayerResponse, status_code=201)
    async def create_player(payload: PlayerPayload) -> PlayerResponse:
        with _controller() as controller:
            controller.open_create()
            player_id = _submit_or_raise(controller, payload)
        player = store.get_player(player_id)
        if player is None:  # pragma: no cover
            raise HTTPException(status_code=500, detail="Player missing after insert")
        return PlayerResponse.from_record(player)

    @app.put("/players/{player_id}", response_model=PlayerResponse)
    async def update_player(player_id: str, payload: PlayerPayload) -> PlayerResponse:
        with _controller() as controller:
            try:
                controller.open_edit(player_id)
            except PlayerNotFoundError as exc:
                raise HTTPException(status_code=404, detail="Player not found") from exc
            _submit_or_raise(controller, payload)
        player = store.get_player(player_id)
        if player is None:  # pragma: no cover
            raise HTTPException(status_code=404, detail="Player not found")
        return PlayerResponse.from_record(player)

    @app.patch("/players/{player_id}", response_model=PlayerResponse)
    async def patch_player(player_id: str, payload: PlayerPayload) -> PlayerResponse:
        with _controller() as controller:
            try:
                controller.open_edit(player_id)
            except PlayerNotFoundError as exc:
                raise HTTPException(status_code=404, detail="Player not found") from exc
            _submit_or_raise(controller, payload, merge=True)
        player = store.get_player(player_id)
        if player is None:  # pragma: no cover
            raise HTTPException(status_code=404, detail="Player not found")
        return PlayerResponse.from_record(player)

    @app.delete("/players/{player_id}", status_code=204)
    async def delete_player(player_id: str) -> Response:
        with _controller() as controller:
            controller.request_delete(player_id)
            try:
                controller.confirm_delete()
            except PlayerNotFoundError as exc:
                raise HTTPException(status_code=404, detail="Player not found") from exc
        return Response(status_code=204)

    @app.get("/ui", response_class=HTMLResponse)
    async def ui_index(
        sort_by: str | None = Query(None),
        sort_direction: str | None = Query(None),
        notice: str | None = Query(None),
        error: str | None = Query(None),
    ):
        state = RegistrationState(sort=_parse_sort_or_400(sort_by, sort_direction))
        with _controller(state) as controller:
            content = _render_roster_page(controller, settings=settings, notice=notice, error=error)
        return HTMLResponse(content)

    @app.get("/ui/players/new", response_class=HTMLResponse)
    async def ui_new_player():
        with _controller() as controller:
            controller.open_create()
            content = _render_roster_page(controller, settings=settings)
        return HTMLResponse(content)

    @app.get("/ui/players/{player_id}/edit", response_class=HTMLResponse)
    async def ui_edit_player(player_id: str):
        with _controller() as controller:
            try:
                controller.open_edit(player_id)
            except PlayerNotFoundError as exc:
                raise HTTPException(status_code=404, detail="Player not found") from exc
            content = _render_roster_page(controller, settings=settings)
        return HTMLResponse(content)

    def _ui_submit(controller: RegistrationController, form_values: dict[str, str], success: str):
        controller.load_form(form_values)
        try:
            outcome = controller.submit()
        except PersistenceError as exc:
            logger.error("Saving player failed: %s", exc)
            content = _render_roster_page(controller, settings=settings, error=f"Could not save player: {exc}")
            return HTMLResponse(content, status_code=500)
        if not outcome.saved:
            content = _render_roster_page(controller, settings=settings)
            return HTMLResponse(content, status_code=422 if outcome.status == "invalid" else 409)
        return _redirect_with("/ui", notice=success)

    @app.post("/ui/players")
    async def ui_create_player(
        name: str = Form(""),
        jersey_name: str = Form(""),
        number: str = Form(""),
        size: str = Form(""),
        position: str = Form(""),
        notes: str = Form(""),
    ):
        form_values = {
            "name": name,
            "jersey_name": jersey_name,
            "number": number,
            "size": size,
            "position": position,
            "notes": notes,
        }
        with _controller() as controller:
            controller.open_create()
            return _ui_submit(controller, form_values, "Thanks for registering!")

    @app.post("/ui/players/{player_id}")
    async def ui_update_player(
        player_id: str,
        name: str = Form(""),
        jersey_name: str = Form(""),
        number: str = Form(""),
        size: str = Form(""),
        position: str = Form(""),
        notes: str = Form(""),
    ):
        form_values = {
            "name": name,
            "jersey_name": jersey_name,
            "number": number,
            "size": size,
            "position": position,
            "notes": notes,
        }
        with _controller() as controller:
            try:
                controller.open_edit(player_id)
            except PlayerNotFoundError:
                return _redirect_with("/ui", error="Player not found")
            return _ui_submit(controller, form_values, "Player updated")

    @app.get("/ui/players/{player_id}/delete", response_class=HTMLResponse)
    async def ui_confirm_delete(player_id: str):
        with _controller() as controller:
            try:
                controller.find_player(player_id)
            except PlayerNotFoundError as exc:
                raise HTTPException(status_code=404, detail="Player not found") from exc
            controller.request_delete(player_id)
            content = _render_roster_page(controller, settings=settings)
        return HTMLResponse(content)

    @app.post("/ui/players/{player_id}/delete")
    async def ui_delete_player(player_id: str):
        with _controller() as controller:
            controller.request_delete(player_id)
            try:
                controller.confirm_delete()
            except PersistenceError as exc:
                return _redirect_with("/ui", error=str(exc))
        return _redirect_with("/ui", notice="Player deleted successfully")

    return app
