"""FastAPI-powered web UI for the games hub."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import Timings
from .hub import (
    GAME_VIEWS,
    MENU,
    TITLES,
    VIEW_MEMORY,
    VIEW_SPINNER,
    VIEW_TICTACTOE,
    HubController,
)
from .memory import MemoryMatchEngine
from .rng import RandomSource
from .spinner import SpinnerEngine
from .tictactoe import ALLOWED_MODES, TicTacToeEngine
from .timers import ThreadingScheduler

logger = logging.getLogger(__name__)


@dataclass
class HubSession:
    """One browser tab's hub plus the lock its timers and requests share."""

    hub: HubController
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    touched_at: float = field(default_factory=lambda: time.time())


SESSIONS: Dict[str, HubSession] = {}
SESSIONS_LOCK = threading.Lock()
app = FastAPI(title="Fun Games Hub", description="Casual mini-games in the browser")

TIMINGS: Timings = Timings.from_env()
SESSION_TTL_SECONDS = 60 * 60 * 2  # 2 hours


class ViewRequest(BaseModel):
    """Request payload for choosing a game from the menu."""

    view: str

    @field_validator("view")
    @classmethod
    def ensure_game_view(cls, value: str) -> str:
        if value not in GAME_VIEWS:
            raise ValueError(
                f"Unknown view {value!r}. Choose one of {', '.join(GAME_VIEWS)}."
            )
        return value


class ModeRequest(BaseModel):
    mode: str

    @field_validator("mode")
    @classmethod
    def ensure_supported_mode(cls, value: str) -> str:
        if value not in ALLOWED_MODES:
            raise ValueError(
                f"Unsupported mode {value!r}. Choose one of {', '.join(ALLOWED_MODES)}."
            )
        return value


class MoveRequest(BaseModel):
    """Request payload for a Tic-Tac-Toe cell click."""

    model_config = ConfigDict(populate_by_name=True)

    cell_index: int = Field(alias="cellIndex", ge=0, le=8)


class FlipRequest(BaseModel):
    """Request payload for a Memory Match card click."""

    model_config = ConfigDict(populate_by_name=True)

    card_id: int = Field(alias="cardId", ge=0)


# ---------- Sessions ----------


def _cleanup_sessions() -> None:
    """Close sessions that have not been touched for a while."""

    now = time.time()
    with SESSIONS_LOCK:
        expired = [
            session_id
            for session_id, session in list(SESSIONS.items())
            if now - session.touched_at >= SESSION_TTL_SECONDS
        ]
        stale = [SESSIONS.pop(session_id) for session_id in expired]
    for session in stale:
        with session.lock:
            session.hub.close()
    if expired:
        logger.info("Expired %d idle hub session(s)", len(expired))


def _create_session() -> Tuple[str, HubSession]:
    _cleanup_sessions()
    lock = threading.RLock()
    hub = HubController(
        scheduler=ThreadingScheduler(lock),
        rng=RandomSource(),
        timings=TIMINGS,
    )
    session = HubSession(hub=hub, lock=lock)
    session_id = uuid.uuid4().hex
    with SESSIONS_LOCK:
        SESSIONS[session_id] = session
    logger.info("Created hub session %s", session_id)
    return session_id, session


def _get_session(hub_id: str) -> HubSession:
    with SESSIONS_LOCK:
        try:
            session = SESSIONS[hub_id]
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Hub session not found") from exc
        session.touched_at = time.time()
    return session


def _require_tictactoe(session: HubSession) -> TicTacToeEngine:
    engine = session.hub.tictactoe
    if engine is None:
        raise HTTPException(status_code=409, detail="Tic-Tac-Toe is not open")
    return engine


def _require_memory(session: HubSession) -> MemoryMatchEngine:
    engine = session.hub.memory
    if engine is None:
        raise HTTPException(status_code=409, detail="Memory Match is not open")
    return engine


def _require_spinner(session: HubSession) -> SpinnerEngine:
    engine = session.hub.spinner
    if engine is None:
        raise HTTPException(status_code=409, detail="Surprise Spinner is not open")
    return engine


# ---------- Serialization ----------


def _serialize_tictactoe(engine: TicTacToeEngine) -> Dict[str, object]:
    state = engine.state
    outcome = engine.outcome
    return {
        "cells": [c if c in ("X", "O") else "" for c in state.board],
        "nextMark": state.next_mark,
        "mode": state.mode,
        "winner": outcome if outcome in ("X", "O") else None,
        "drawn": outcome == "draw",
        "status": engine.status_text,
        "opponentPending": engine.opponent_pending,
    }


def _serialize_memory(engine: MemoryMatchEngine) -> Dict[str, object]:
    state = engine.state
    cards: List[Dict[str, object]] = []
    for card in state.deck:
        face_up = card.flipped or card.matched
        cards.append(
            {
                "id": card.id,
                # Face-down values stay on the server.
                "value": card.value if face_up else None,
                "flipped": card.flipped,
                "matched": card.matched,
            }
        )
    return {
        "cards": cards,
        "moves": state.move_count,
        "locked": state.input_locked,
        "complete": engine.is_complete,
        "status": engine.status_text,
    }


def _serialize_spinner(engine: SpinnerEngine) -> Dict[str, object]:
    state = engine.state
    result: Optional[Dict[str, str]] = None
    if state.result is not None:
        result = {"id": state.result.id, "name": state.result.name}
    return {
        "spinning": state.spinning,
        "result": result,
        "candidates": [{"id": c.id, "name": c.name} for c in engine.candidates],
        "status": engine.status_text,
    }


def _serialize_session(hub_id: str, session: HubSession) -> Dict[str, object]:
    with session.lock:
        hub = session.hub
        state: Dict[str, object] = {
            "id": hub_id,
            "view": hub.view,
            "theme": hub.theme,
            "title": TITLES.get(hub.view),
            "menu": [
                {"view": e.view, "title": e.title, "description": e.description}
                for e in MENU
            ],
            "pending": hub.pending,
        }
        if hub.view == VIEW_TICTACTOE and hub.tictactoe is not None:
            state["tictactoe"] = _serialize_tictactoe(hub.tictactoe)
        elif hub.view == VIEW_MEMORY and hub.memory is not None:
            state["memory"] = _serialize_memory(hub.memory)
        elif hub.view == VIEW_SPINNER and hub.spinner is not None:
            state["spinner"] = _serialize_spinner(hub.spinner)
        return state


# ---------- Routes ----------


@app.post("/api/hub")
def create_hub() -> Dict[str, object]:
    hub_id, session = _create_session()
    return _serialize_session(hub_id, session)


@app.get("/api/hub/{hub_id}")
def get_hub(hub_id: str) -> Dict[str, object]:
    session = _get_session(hub_id)
    return _serialize_session(hub_id, session)


@app.delete("/api/hub/{hub_id}")
def delete_hub(hub_id: str) -> Dict[str, object]:
    with SESSIONS_LOCK:
        session = SESSIONS.pop(hub_id, None)
    if session is None:
        raise HTTPException(status_code=404, detail="Hub session not found")
    with session.lock:
        session.hub.close()
    logger.info("Closed hub session %s", hub_id)
    return {"id": hub_id, "closed": True}


@app.post("/api/hub/{hub_id}/view")
def select_view(hub_id: str, request: ViewRequest) -> Dict[str, object]:
    session = _get_session(hub_id)
    with session.lock:
        session.hub.select(request.view)
    return _serialize_session(hub_id, session)


@app.post("/api/hub/{hub_id}/back")
def go_back(hub_id: str) -> Dict[str, object]:
    session = _get_session(hub_id)
    with session.lock:
        session.hub.back()
    return _serialize_session(hub_id, session)


@app.post("/api/hub/{hub_id}/home")
def go_home(hub_id: str) -> Dict[str, object]:
    session = _get_session(hub_id)
    with session.lock:
        session.hub.home()
    return _serialize_session(hub_id, session)


@app.post("/api/hub/{hub_id}/theme")
def toggle_theme(hub_id: str) -> Dict[str, object]:
    session = _get_session(hub_id)
    with session.lock:
        session.hub.toggle_theme()
    return _serialize_session(hub_id, session)


@app.post("/api/hub/{hub_id}/tictactoe/move")
def tictactoe_move(hub_id: str, request: MoveRequest) -> Dict[str, object]:
    session = _get_session(hub_id)
    with session.lock:
        _require_tictactoe(session).play(request.cell_index)
    return _serialize_session(hub_id, session)


@app.post("/api/hub/{hub_id}/tictactoe/mode")
def tictactoe_mode(hub_id: str, request: ModeRequest) -> Dict[str, object]:
    session = _get_session(hub_id)
    with session.lock:
        _require_tictactoe(session).set_mode(request.mode)
    return _serialize_session(hub_id, session)


@app.post("/api/hub/{hub_id}/tictactoe/reset")
def tictactoe_reset(hub_id: str) -> Dict[str, object]:
    session = _get_session(hub_id)
    with session.lock:
        _require_tictactoe(session).reset()
    return _serialize_session(hub_id, session)


@app.post("/api/hub/{hub_id}/memory/flip")
def memory_flip(hub_id: str, request: FlipRequest) -> Dict[str, object]:
    session = _get_session(hub_id)
    with session.lock:
        engine = _require_memory(session)
        try:
            engine.flip(request.card_id)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _serialize_session(hub_id, session)


@app.post("/api/hub/{hub_id}/memory/restart")
def memory_restart(hub_id: str) -> Dict[str, object]:
    session = _get_session(hub_id)
    with session.lock:
        _require_memory(session).restart()
    return _serialize_session(hub_id, session)


@app.post("/api/hub/{hub_id}/spinner/spin")
def spinner_spin(hub_id: str) -> Dict[str, object]:
    session = _get_session(hub_id)
    with session.lock:
        _require_spinner(session).spin()
    return _serialize_session(hub_id, session)


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>Fun Games Hub</title>
    <link rel=\"preconnect\" href=\"https://fonts.googleapis.com\" />
    <link rel=\"preconnect\" href=\"https://fonts.gstatic.com\" crossorigin />
    <link
      href=\"https://fonts.googleapis.com/css2?family=Poppins:wght@400;500;600;700&display=swap\"
      rel=\"stylesheet\"
    />
    <style>
      :root {
        color-scheme: light;
        font-family: 'Poppins', system-ui, -apple-system, BlinkMacSystemFont, \"Segoe UI\", sans-serif;
        --bg: linear-gradient(135deg, #f0f9ff, #ffffff);
        --panel: rgba(255, 255, 255, 0.85);
        --text: #1e293b;
        --muted: #64748b;
        --tile: rgba(255, 255, 255, 0.7);
        --tile-filled: #e2e8f0;
        --border: #e2e8f0;
      }
      html.dark {
        color-scheme: dark;
        --bg: linear-gradient(135deg, #111827, #1f2937);
        --panel: rgba(15, 23, 42, 0.6);
        --text: #f1f5f9;
        --muted: #cbd5e1;
        --tile: rgba(30, 41, 59, 0.4);
        --tile-filled: #334155;
        --border: #334155;
      }
      * {
        box-sizing: border-box;
      }
      body {
        margin: 0;
        min-height: 100vh;
        padding: 1.5rem;
        background: var(--bg);
        color: var(--text);
        transition: background 0.4s ease;
      }
      .wrap {
        max-width: 56rem;
        margin: 0 auto;
      }
      header {
        display: flex;
        align-items: center;
        justify-content: space-between;
        margin-bottom: 1.5rem;
      }
      h1 {
        margin: 0;
        font-size: 1.9rem;
        font-weight: 800;
      }
      main {
        background: var(--panel);
        border-radius: 18px;
        padding: 1.5rem;
        box-shadow: 0 20px 40px rgba(34, 47, 79, 0.16);
      }
      button,
      select {
        font: inherit;
        color: inherit;
        padding: 0.35rem 0.8rem;
        border-radius: 10px;
        border: 1px solid var(--border);
        background: var(--tile);
        cursor: pointer;
      }
      button:disabled {
        cursor: default;
        opacity: 0.6;
      }
      a.home {
        color: var(--muted);
        font-size: 0.9rem;
        margin-left: 0.75rem;
      }
      .menu {
        display: grid;
        grid-template-columns: repeat(auto-fit, minmax(14rem, 1fr));
        gap: 1rem;
      }
      .menu button {
        text-align: left;
        padding: 1rem;
        border-radius: 14px;
        transition: transform 0.1s ease;
      }
      .menu button:hover {
        transform: scale(1.02);
      }
      .menu h3 {
        margin: 0 0 0.5rem;
      }
      .menu p {
        margin: 0;
        color: var(--muted);
        font-size: 0.9rem;
      }
      .toolbar {
        display: flex;
        align-items: center;
        justify-content: space-between;
        margin-bottom: 1rem;
      }
      .toolbar h2 {
        margin: 0;
        font-size: 1.25rem;
      }
      .controls {
        display: flex;
        align-items: center;
        gap: 0.75rem;
        margin-bottom: 1rem;
      }
      .controls .push {
        margin-left: auto;
      }
      .ttt {
        display: grid;
        grid-template-columns: repeat(3, 1fr);
        gap: 0.5rem;
        width: min(320px, 100%);
        margin: 0 auto;
      }
      .ttt button {
        height: 5rem;
        font-size: 1.6rem;
        font-weight: 700;
      }
      .ttt button.filled {
        background: var(--tile-filled);
      }
      .cards {
        display: grid;
        grid-template-columns: repeat(4, 1fr);
        gap: 0.75rem;
        width: min(480px, 100%);
        margin: 0 auto;
      }
      .cards button {
        aspect-ratio: 3 / 4;
        font-size: 1.6rem;
        background: var(--tile-filled);
      }
      .cards button.up {
        background: var(--tile);
      }
      .status {
        text-align: center;
        color: var(--muted);
        margin-top: 1rem;
      }
      .done {
        color: #16a34a;
      }
      .wheel {
        width: 12rem;
        height: 12rem;
        margin: 0 auto;
        border-radius: 999px;
        display: grid;
        place-items: center;
        font-size: 2.5rem;
        background: linear-gradient(135deg, #fef3c7, #fde68a);
      }
      .wheel.spinning {
        animation: spin 1.2s cubic-bezier(0.2, 0.9, 0.4, 0.9) infinite;
      }
      .center {
        text-align: center;
      }
      #message {
        min-height: 1.25rem;
        color: #b00020;
        text-align: center;
        font-weight: 600;
      }
      footer {
        text-align: center;
        color: var(--muted);
        font-size: 0.9rem;
        margin-top: 1rem;
      }
      @keyframes spin {
        to {
          transform: rotate(360deg);
        }
      }
    </style>
  </head>
  <body>
    <div class=\"wrap\">
      <header>
        <h1>Fun Games Hub 🎮</h1>
        <div>
          <button id=\"theme-toggle\" type=\"button\">Dark</button>
          <a id=\"home-link\" class=\"home\" href=\"#play\">Home</a>
        </div>
      </header>
      <main>
        <div id=\"message\" role=\"status\"></div>
        <div id=\"view\"></div>
      </main>
      <footer>Made with ❤️ — click any game to play instantly.</footer>
    </div>
    <script>
      const viewEl = document.getElementById('view');
      const messageEl = document.getElementById('message');
      const themeButton = document.getElementById('theme-toggle');
      const homeLink = document.getElementById('home-link');

      let hubId = null;
      let hubState = null;
      let isRequestPending = false;
      let pollHandle = null;

      function stopPolling() {
        if (pollHandle !== null) {
          clearTimeout(pollHandle);
          pollHandle = null;
        }
      }

      function ensurePolling() {
        if (pollHandle !== null) return;
        pollHandle = window.setTimeout(pollState, 150);
      }

      async function pollState() {
        pollHandle = null;
        if (!hubId) return;
        try {
          const response = await fetch(`/api/hub/${hubId}`);
          if (response.ok) {
            setState(await response.json());
            return;
          }
        } catch (error) {
          console.error('Polling failed', error);
        }
        if (hubState?.pending) ensurePolling();
      }

      async function call(path, body) {
        if (!hubId || isRequestPending) return;
        isRequestPending = true;
        messageEl.textContent = '';
        try {
          const response = await fetch(`/api/hub/${hubId}${path}`, {
            method: 'POST',
            headers: { 'Content-Type': 'application/json' },
            body: body ? JSON.stringify(body) : undefined,
          });
          if (!response.ok) {
            if (response.status === 404) {
              // Hub was closed (idle expiry or an earlier pagehide); start over.
              hubId = null;
              await startHub();
              return;
            }
            const payload = await response.json().catch(() => ({}));
            messageEl.textContent = typeof payload?.detail === 'string' ? payload.detail : 'Request failed';
            return;
          }
          setState(await response.json());
        } catch (error) {
          messageEl.textContent = 'Network error. Please try again.';
        } finally {
          isRequestPending = false;
        }
      }

      function setState(data) {
        hubState = data;
        document.documentElement.classList.toggle('dark', data.theme === 'dark');
        themeButton.textContent = data.theme === 'light' ? 'Dark' : 'Light';
        render();
        if (data.pending) {
          ensurePolling();
        } else {
          stopPolling();
        }
      }

      function el(tag, attrs = {}, children = []) {
        const node = document.createElement(tag);
        Object.entries(attrs).forEach(([key, value]) => {
          if (key === 'onclick') node.addEventListener('click', value);
          else if (key === 'text') node.textContent = value;
          else if (key === 'className') node.className = value;
          else node.setAttribute(key, value);
        });
        children.forEach((child) => node.appendChild(child));
        return node;
      }

      function toolbar(title) {
        return el('div', { className: 'toolbar' }, [
          el('h2', { text: title }),
          el('button', { type: 'button', text: 'Back', onclick: () => call('/back') }),
        ]);
      }

      function renderMenu() {
        const grid = el('div', { className: 'menu' });
        hubState.menu.forEach((entry) => {
          grid.appendChild(
            el('button', { type: 'button', onclick: () => call('/view', { view: entry.view }) }, [
              el('h3', { text: entry.title }),
              el('p', { text: entry.description }),
            ])
          );
        });
        return grid;
      }

      function renderTicTacToe(game) {
        const select = el('select', { 'aria-label': 'Mode' }, [
          el('option', { value: 'human', text: 'Human vs Human' }),
          el('option', { value: 'cpu', text: 'Human (X) vs CPU (O)' }),
        ]);
        select.value = game.mode;
        select.addEventListener('change', () => call('/tictactoe/mode', { mode: select.value }));
        const controls = el('div', { className: 'controls' }, [
          el('label', { text: 'Mode:' }),
          select,
          el('button', { type: 'button', className: 'push', text: 'Reset', onclick: () => call('/tictactoe/reset') }),
        ]);
        const board = el('div', { className: 'ttt' });
        game.cells.forEach((value, cellIndex) => {
          board.appendChild(
            el('button', {
              type: 'button',
              className: value ? 'filled' : '',
              text: value,
              onclick: () => call('/tictactoe/move', { cellIndex }),
            })
          );
        });
        return el('div', {}, [controls, board, el('p', { className: 'status', text: game.status })]);
      }

      function renderMemory(game) {
        const controls = el('div', { className: 'controls' }, [
          el('span', { text: `Moves: ${game.moves}` }),
          el('button', { type: 'button', className: 'push', text: 'Restart', onclick: () => call('/memory/restart') }),
        ]);
        const grid = el('div', { className: 'cards' });
        game.cards.forEach((card) => {
          const faceUp = card.flipped || card.matched;
          grid.appendChild(
            el('button', {
              type: 'button',
              className: faceUp ? 'up' : '',
              text: faceUp ? card.value : '❓',
              onclick: () => call('/memory/flip', { cardId: card.id }),
            })
          );
        });
        const children = [controls, grid];
        if (game.complete) {
          children.push(el('p', { className: 'status done', text: `${game.status} 🎉` }));
        }
        return el('div', {}, children);
      }

      function renderSpinner(game) {
        const row = el('div', { className: 'controls', style: 'justify-content: center' }, [
          el('button', { type: 'button', text: 'Spin', onclick: () => call('/spinner/spin') }),
        ]);
        if (game.result) {
          row.appendChild(el('span', { text: game.status }));
        }
        return el('div', { className: 'center' }, [
          el('div', { className: game.spinning ? 'wheel spinning' : 'wheel', text: '🎲' }),
          el('p', { text: 'Click spin to choose a game at random.' }),
          row,
        ]);
      }

      function render() {
        viewEl.innerHTML = '';
        if (!hubState) return;
        if (hubState.view === 'menu') {
          viewEl.appendChild(renderMenu());
          return;
        }
        viewEl.appendChild(toolbar(hubState.title));
        if (hubState.tictactoe) viewEl.appendChild(renderTicTacToe(hubState.tictactoe));
        if (hubState.memory) viewEl.appendChild(renderMemory(hubState.memory));
        if (hubState.spinner) viewEl.appendChild(renderSpinner(hubState.spinner));
      }

      async function startHub() {
        try {
          const response = await fetch('/api/hub', { method: 'POST' });
          if (!response.ok) {
            throw new Error('Unable to start the hub');
          }
          const data = await response.json();
          hubId = data.id;
          setState(data);
        } catch (error) {
          messageEl.textContent = error.message || 'Network error. Please try again.';
        }
      }

      themeButton.addEventListener('click', () => call('/theme'));
      homeLink.addEventListener('click', (event) => {
        event.preventDefault();
        call('/home');
      });
      window.addEventListener('pagehide', () => {
        if (hubId) {
          fetch(`/api/hub/${hubId}`, { method: 'DELETE', keepalive: true });
        }
      });
      window.addEventListener('pageshow', (event) => {
        if (event.persisted) {
          stopPolling();
          hubId = null;
          startHub();
        }
      });

      startHub();
    </script>
  </body>
</html>
"""
