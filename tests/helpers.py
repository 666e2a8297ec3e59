from __future__ import annotations

from fastapi.testclient import TestClient


def register(client: TestClient, username: str, password: str, confirm: str | None = None):
    return client.post(
        "/register",
        data={"username": username, "password": password, "confirmPassword": password if confirm is None else confirm},
        follow_redirects=False,
    )


def login(client: TestClient, username: str, password: str):
    return client.post("/login", data={"username": username, "password": password}, follow_redirects=False)
