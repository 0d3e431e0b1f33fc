import asyncio
import json

from main import health, root, turn_hint


def test_health_endpoint():
    response = asyncio.run(health())
    assert response.status_code == 200
    assert json.loads(response.body) == {"ok": True}


def test_turn_path_get_returns_hint():
    response = asyncio.run(turn_hint())
    assert response.status_code == 200
    assert json.loads(response.body) == {"ok": True, "hint": "POST here with messages[]"}


def test_root_banner_names_brand():
    response = asyncio.run(root())
    assert response.status_code == 200
    assert response.body.decode().endswith("Retell LLM up")
