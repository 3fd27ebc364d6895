"""
One-shot smoke test of the Vertex AI models used for icons and audio.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from models.vertex_ai import VertexAIService
from ops.ai_smoke import run_smoke_test
from ops.console import Level, configure_logging, echo, header
from ops.errors import MissingConfigError, load_settings
from ops.steps import Tally, overall_success, report

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Smoke test the AI models")
    parser.add_argument("--prompt", default=None, help="Icon prompt (default SMOKE_TEST_PROMPT)")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=ROOT / "test-output",
        help="Where the generated icon is saved",
    )
    parser.add_argument("--speech", action="store_true", help="Also test text-to-speech")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()
    configure_logging(args.verbose)

    try:
        settings = load_settings()
    except MissingConfigError as exc:
        echo(str(exc), Level.ERROR)
        echo(exc.remediation, Level.INFO)
        return 1
    if not settings.project_id:
        echo("GOOGLE_CLOUD_PROJECT is not set", Level.ERROR)
        return 1

    try:
        ai = VertexAIService.from_settings(settings)
        header(f"AI models in {settings.project_id}/{settings.vertex_ai_location}")
        for role, model in ai.status()["models"].items():
            echo(f"{role}: {model}")
        results = run_smoke_test(
            ai,
            args.prompt or settings.smoke_test_prompt,
            args.output_dir,
            include_speech=args.speech,
            on_result=report,
        )
    except Exception as exc:
        logger.exception("Smoke test crashed")
        echo(f"Smoke test crashed: {exc}", Level.ERROR)
        return 1

    header("Summary")
    echo(str(Tally.from_results(results)))
    return 0 if overall_success(results) else 1


if __name__ == "__main__":
    raise SystemExit(main())
