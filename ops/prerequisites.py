"""
Local and cloud prerequisite checks.

Every check produces a CheckRecord; a failing check never stops the others.
"""

from __future__ import annotations

import importlib.util
import json
import logging
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from backend.config import Settings

logger = logging.getLogger(__name__)

MIN_PYTHON = (3, 11)
REQUIRED_COMMANDS = (
    ("python3", "Python 3"),
    ("curl", "curl"),
    ("gcloud", "Google Cloud CLI"),
    ("gsutil", "Google Cloud Storage CLI"),
)
REQUIRED_FILES = (".env", "pyproject.toml")
REQUIRED_ENV = (
    "GOOGLE_CLOUD_PROJECT",
    "FIREBASE_PROJECT_ID",
    "VERTEX_AI_LOCATION",
    "STORAGE_BUCKET_NAME",
)
REQUIRED_APIS = (
    "firestore.googleapis.com",
    "storage.googleapis.com",
    "aiplatform.googleapis.com",
)
REQUIRED_MODULES = (
    "fastapi",
    "pydantic_settings",
    "firebase_admin",
    "google.cloud.firestore",
    "google.cloud.storage",
    "google.genai",
    "dacite",
    "requests",
    "PIL",
)

COMMON_FIXES = [
    "Install the Google Cloud CLI: https://cloud.google.com/sdk/docs/install",
    "Authenticate: gcloud auth login && gcloud auth application-default login",
    "Copy .env.example to .env and fill in the project settings",
    "Enable APIs: gcloud services enable firestore.googleapis.com storage.googleapis.com aiplatform.googleapis.com",
    "Install Python dependencies: pip install -e '.[test]'",
    "Download a service account JSON key and point GOOGLE_APPLICATION_CREDENTIALS at it",
]
SERVICE_ACCOUNT_FIELDS = ("type", "project_id", "private_key_id", "private_key", "client_email")

Runner = Callable[[Sequence[str]], subprocess.CompletedProcess]


@dataclass
class CheckRecord:
    section: str
    name: str
    passed: bool
    detail: str = ""
    warning: bool = False


def _run(args: Sequence[str]) -> subprocess.CompletedProcess:
    return subprocess.run(
        list(args), capture_output=True, text=True, timeout=60, check=False
    )


class PrerequisiteChecker:
    """Runs the checklist. `run` and `which` are injectable for tests."""

    def __init__(
        self,
        settings: Settings,
        *,
        root: Path = Path("."),
        run: Runner = _run,
        which: Callable[[str], Optional[str]] = shutil.which,
        version_info: tuple = tuple(sys.version_info[:3]),
        find_spec: Callable = importlib.util.find_spec,
    ):
        self.settings = settings
        self.root = root
        self.run = run
        self.which = which
        self.version_info = version_info
        self.find_spec = find_spec
        self.records: list[CheckRecord] = []

    def _record(self, section: str, name: str, check: Callable[[], tuple[bool, str]]) -> bool:
        try:
            passed, detail = check()
        except Exception as e:
            logger.debug("Check %s crashed", name, exc_info=True)
            passed, detail = False, f"{type(e).__name__}: {e}"
        self.records.append(CheckRecord(section, name, passed, detail))
        return passed

    def _gcloud(self, *args: str) -> tuple[bool, str]:
        result = self.run(["gcloud", *args])
        output = (result.stdout or "").strip()
        if result.returncode != 0:
            return False, (result.stderr or output or "gcloud failed").strip()
        return bool(output), output

    def check_commands(self) -> None:
        for command, label in REQUIRED_COMMANDS:
            self._record(
                "tools",
                label,
                lambda command=command: (
                    self.which(command) is not None,
                    self.which(command) or "not found on PATH",
                ),
            )
        self._record(
            "tools",
            f"Python >= {MIN_PYTHON[0]}.{MIN_PYTHON[1]}",
            lambda: (
                tuple(self.version_info[:2]) >= MIN_PYTHON,
                ".".join(str(part) for part in self.version_info),
            ),
        )

    def check_files(self) -> None:
        paths = [(name, self.root / name) for name in REQUIRED_FILES]
        credentials = self.settings.google_application_credentials
        if credentials:
            paths.append(("service account key", Path(credentials)))
        for label, path in paths:
            self._record(
                "files",
                label,
                lambda path=path: (path.is_file(), str(path)),
            )

    def check_environment(self) -> None:
        explicit = self.settings.model_fields_set
        for name in REQUIRED_ENV:
            field = name.lower()
            self._record(
                "environment",
                name,
                lambda field=field: (
                    field in explicit and bool(getattr(self.settings, field)),
                    "set" if field in explicit else "not set",
                ),
            )

    def check_cloud(self) -> None:
        if self.which("gcloud") is None:
            self.records.append(
                CheckRecord("cloud", "gcloud", False, "gcloud not installed; cloud checks skipped")
            )
            return
        self._record(
            "cloud",
            "active gcloud account",
            lambda: self._gcloud(
                "auth", "list", "--filter=status:ACTIVE", "--format=value(account)"
            ),
        )
        project = self.settings.project_id
        if not project:
            self.records.append(
                CheckRecord("cloud", "project", False, "GOOGLE_CLOUD_PROJECT not set")
            )
            return
        self._record(
            "cloud",
            f"project {project}",
            lambda: self._gcloud(
                "projects", "describe", project, "--format=value(projectId)"
            ),
        )
        for api in REQUIRED_APIS:
            self._record(
                "cloud",
                f"API {api}",
                lambda api=api: self._gcloud(
                    "services",
                    "list",
                    "--enabled",
                    f"--filter=name:{api}",
                    "--format=value(name)",
                    f"--project={project}",
                ),
            )

    def _warn_unless(self, section: str, name: str, ok: bool, detail: str) -> None:
        self.records.append(CheckRecord(section, name, True, detail, warning=not ok))

    def _load_service_account_key(self, path: Path) -> Optional[dict]:
        try:
            key = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            self.records.append(
                CheckRecord("firebase", "service account key", False, f"cannot parse {path}: {e}")
            )
            return None
        if not isinstance(key, dict):
            self.records.append(
                CheckRecord("firebase", "service account key", False, "not a JSON object")
            )
            return None
        return key

    def check_firebase(self) -> None:
        """Project ids and the service account key; mismatches are warnings."""
        cloud_project = self.settings.google_cloud_project
        firebase_project = self.settings.firebase_project_id
        if cloud_project and firebase_project:
            self._warn_unless(
                "firebase",
                "project ids match",
                cloud_project == firebase_project,
                f"GOOGLE_CLOUD_PROJECT={cloud_project} FIREBASE_PROJECT_ID={firebase_project}",
            )

        credentials = self.settings.google_application_credentials
        # A missing key file is reported by check_files.
        if not credentials or not Path(credentials).is_file():
            return
        key = self._load_service_account_key(Path(credentials))
        if key is None:
            return

        def key_fields() -> tuple[bool, str]:
            missing = [field for field in SERVICE_ACCOUNT_FIELDS if not key.get(field)]
            if missing:
                return False, f"missing fields: {', '.join(missing)}"
            if key["type"] != "service_account":
                return False, f"type is {key['type']!r}, expected 'service_account'"
            return True, key["client_email"]

        if self._record("firebase", "service account key", key_fields):
            project = self.settings.project_id
            self._warn_unless(
                "firebase",
                "service account project",
                not project or key["project_id"] == project,
                f"key has {key['project_id']}, environment has {project or '(unset)'}",
            )

    def check_python_dependencies(self) -> None:
        for module in REQUIRED_MODULES:
            self._record(
                "python",
                module,
                lambda module=module: (
                    self.find_spec(module) is not None,
                    "importable" if self.find_spec(module) else "missing",
                ),
            )

    def run_all(self) -> list[CheckRecord]:
        self.records = []
        self.check_commands()
        self.check_files()
        self.check_environment()
        self.check_firebase()
        self.check_cloud()
        self.check_python_dependencies()
        return list(self.records)


def all_passed(records: Sequence[CheckRecord]) -> bool:
    return all(record.passed for record in records)
