"""
Checks how the boards endpoint treats missing, bogus and real credentials.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import requests
from pydantic import ValidationError

from backend.schemas import BoardIn
from ops.steps import Outcome, SkipStep, Step, StepResult, run_pipeline

logger = logging.getLogger(__name__)

BOGUS_TOKEN = "not-a-real-token"
INVALID_TOKEN_CODES = frozenset({"INVALID_TOKEN", "TOKEN_EXPIRED", "TOKEN_REVOKED"})
REQUEST_TIMEOUT_SECONDS = 30


def sample_board_payload() -> dict:
    return {
        "name": "Auth Check Board",
        "description": "Created and deleted by the board auth checks",
        "isPublic": False,
        "icons": [
            {"id": "hello", "text": "Hello", "position": {"x": 0, "y": 0}},
            {"id": "help", "text": "Help", "position": {"x": 1, "y": 0}},
        ],
    }


class CheckError(RuntimeError):
    pass


def _json(response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class BoardAuthChecker:
    def __init__(
        self,
        api_base_url: str,
        token: Optional[str] = None,
        *,
        payload: Optional[dict] = None,
        session=None,
    ):
        self.boards_url = f"{api_base_url.rstrip('/')}/api/v1/boards"
        self.token = token
        self.payload = payload or sample_board_payload()
        self.session = session or requests.Session()

    def _post(self, headers: dict):
        return self.session.post(
            self.boards_url,
            json=self.payload,
            headers=headers,
            timeout=REQUEST_TIMEOUT_SECONDS,
        )

    def _expect_401(self, response, codes) -> Outcome:
        body = _json(response)
        code = body.get("code")
        if response.status_code != 401 or code not in codes:
            raise CheckError(
                f"expected 401 {'/'.join(sorted(codes))}, got "
                f"HTTP {response.status_code} {code}: {body.get('error') or response.text[:200]}"
            )
        return Outcome(detail=f"401 {code}: {body.get('error')}")

    def local_validation(self, _shared: dict) -> Outcome:
        try:
            board = BoardIn.model_validate(self.payload)
        except ValidationError as e:
            raise CheckError(f"payload rejected locally: {e.error_count()} error(s)") from e
        return Outcome(detail=f"payload valid ({len(board.icons)} icons)")

    def missing_header(self, _shared: dict) -> Outcome:
        return self._expect_401(self._post({}), {"MISSING_AUTH_HEADER"})

    def bogus_token(self, _shared: dict) -> Outcome:
        response = self._post({"Authorization": f"Bearer {BOGUS_TOKEN}"})
        return self._expect_401(response, INVALID_TOKEN_CODES)

    def create_board(self, _shared: dict) -> Outcome:
        if not self.token:
            raise SkipStep("no token supplied")
        response = self._post({"Authorization": f"Bearer {self.token}"})
        body = _json(response)
        if response.status_code != 201:
            raise CheckError(
                f"HTTP {response.status_code} {body.get('code')}: {body.get('error') or response.text[:200]}"
            )
        board = body.get("data") or {}
        if board.get("name") != self.payload["name"]:
            raise CheckError(
                f"stored name {board.get('name')!r} != sent name {self.payload['name']!r}"
            )
        return Outcome(detail=f"created board {board['id']}", data={"boardId": board["id"]})

    def delete_board(self, shared: dict) -> Outcome:
        board_id = shared["create_board"]["boardId"]
        response = self.session.delete(
            f"{self.boards_url}/{board_id}",
            headers={"Authorization": f"Bearer {self.token}"},
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        if response.status_code != 200:
            body = _json(response)
            raise CheckError(f"HTTP {response.status_code} {body.get('code')}")
        return Outcome(detail=f"deleted board {board_id}")

    def steps(self) -> list[Step]:
        return [
            Step("local_validation", self.local_validation),
            Step("missing_header", self.missing_header),
            Step("bogus_token", self.bogus_token),
            Step("create_board", self.create_board, required=bool(self.token)),
            Step(
                "delete_board",
                self.delete_board,
                required=bool(self.token),
                requires=("create_board",),
            ),
        ]


def run_board_auth_checks(
    api_base_url: str,
    token: Optional[str] = None,
    *,
    session=None,
    on_result: Optional[Callable[[StepResult], Any]] = None,
) -> list[StepResult]:
    checker = BoardAuthChecker(api_base_url, token, session=session)
    return run_pipeline(checker.steps(), on_result=on_result)
