import os
from pathlib import Path

import requests
import typer
import uvicorn

from taixiu.config import settings

app = typer.Typer(help="TaiXiu predictor: run the API or talk to a running one.")
BASE = os.getenv("API_BASE", "http://127.0.0.1:8000")
API_KEY = os.getenv("API_KEY") or settings.api_key


def _headers():
    h = {}
    if API_KEY:
        h["X-API-Key"] = API_KEY
    return h


def _show(r: requests.Response):
    typer.echo(r.json())
    if r.status_code >= 400:
        raise typer.Exit(code=1)


@app.command()
def serve(host: str = "127.0.0.1", port: int = 8000, reload: bool = False):
    """Run the HTTP API (and the poll loop) with uvicorn."""
    uvicorn.run("taixiu.api.main:app", host=host, port=port, reload=reload)


@app.command()
def predict():
    r = requests.get(f"{BASE}/predict", headers=_headers())
    _show(r)


@app.command()
def ingest(d1: int, d2: int, d3: int, sid: int = typer.Option(None)):
    r = requests.post(f"{BASE}/ingest", json={"d1": d1, "d2": d2, "d3": d3, "sid": sid}, headers=_headers())
    _show(r)


@app.command()
def history(limit: int = 20):
    r = requests.get(f"{BASE}/history", params={"limit": limit}, headers=_headers())
    _show(r)


@app.command()
def rounds(limit: int = 20):
    r = requests.get(f"{BASE}/rounds", params={"limit": limit}, headers=_headers())
    _show(r)


@app.command()
def stats():
    r = requests.get(f"{BASE}/stats", headers=_headers())
    _show(r)


@app.command()
def replay(file: Path = typer.Argument(..., exists=True, readable=True),
           csv: Path = typer.Option(None, help="write one row per scored prediction"),
           window: int = typer.Option(None)):
    """Walk the engine forward over a JSON file of rounds and report accuracy."""
    from taixiu.replay import CSV_HEADER, load_rounds, replay as run_replay

    rows, engine = run_replay(load_rounds(file), settings.tuning, window=window or settings.window)
    if csv:
        csv.write_text("\n".join([CSV_HEADER] + [row.csv() for row in rows]) + "\n", encoding="utf-8")
    wins = sum(1 for row in rows if row.correct)
    total = len(rows)
    acc = wins / total if total else 0.0
    learning = engine.learning_stats()
    typer.echo(f"scored={total} wins={wins} accuracy={acc:.4f} "
               f"best_streak={learning['best_streak']} worst_streak={learning['worst_streak']} "
               f"reversals={engine.store.reversal.reversal_count}")


if __name__ == "__main__":
    app()
