import re

from fastapi.testclient import TestClient

from onchain_agent.frontend import create_frontend_app, render_app


def visible_text(html: str) -> str:
    body = html.split("<body>", 1)[1]
    return re.sub(r"<[^>]+>", " ", body)


def test_renders_on_chain_security_ai_agent_text():
    assert re.search(r"On-chain Security AI Agent", visible_text(render_app()), re.IGNORECASE)


def test_heading_is_escaped():
    assert "<script>" not in render_app(heading="<script>alert(1)</script>")


def test_frontend_app_serves_shell():
    with TestClient(create_frontend_app()) as client:
        response = client.get("/")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "On-chain Security AI Agent" in response.text
