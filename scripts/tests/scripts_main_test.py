import importlib
import io
import os
import sys
import unittest
from unittest.mock import patch

from google.api_core import exceptions as gexc

from backend.config import Settings, get_settings
from ops.bootstrap import BootstrapReport
from ops.errors import MissingConfigError
from ops.prerequisites import COMMON_FIXES, CheckRecord
from ops.steps import StepResult, StepStatus
from ops.tokens import IdentityToolkitError, IssuedToken
from scripts import (
    bootstrap_resources,
    check_prerequisites,
    debug_board_auth,
    get_id_token,
    setup_storage_bucket,
    test_ai_models,
    test_audio_generation,
)

SCRIPTS = (
    "bootstrap_resources",
    "check_prerequisites",
    "debug_board_auth",
    "generate_test_token",
    "get_id_token",
    "setup_firestore",
    "setup_firestore_indexes",
    "setup_storage_bucket",
    "test_ai_models",
    "test_audio_generation",
)


def make_settings(**env):
    with patch.dict(os.environ, env, clear=True):
        return Settings(_env_file=None)


def step(name, status, detail="", error=None, required=True):
    return StepResult(name, required=required, status=status, detail=detail, error=error)


def run_main(module, *argv):
    with patch.object(sys, "argv", [f"{module.__name__}.py", *argv]), patch(
        "sys.stdout", new_callable=io.StringIO
    ) as out:
        code = module.main()
    return code, out.getvalue()


class ScriptHelpTests(unittest.TestCase):
    def setUp(self):
        get_settings.cache_clear()
        self.addCleanup(get_settings.cache_clear)

    def test_help_exits_zero_even_with_malformed_environment(self):
        with patch.dict(os.environ, {"STEP_DELAY_SECONDS": "soon"}):
            for name in SCRIPTS:
                with self.subTest(script=name):
                    module = importlib.import_module(f"scripts.{name}")
                    with self.assertRaises(SystemExit) as ctx:
                        run_main(module, "--help")
                    self.assertEqual(ctx.exception.code, 0)

    def test_malformed_environment_is_reported_not_raised(self):
        with patch.dict(os.environ, {"STEP_DELAY_SECONDS": "soon"}):
            code, output = run_main(test_audio_generation, "--token", "tok")
        self.assertEqual(code, 1)
        self.assertIn("Invalid configuration: STEP_DELAY_SECONDS", output)
        self.assertIn(".env", output)


class BootstrapResourcesMainTests(unittest.TestCase):
    def setUp(self):
        patcher = patch(
            "scripts.bootstrap_resources.load_settings",
            return_value=make_settings(GOOGLE_CLOUD_PROJECT="aac-dev"),
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    @patch("scripts.bootstrap_resources.run_bootstrap")
    def test_all_ready_exits_zero(self, run_bootstrap):
        run_bootstrap.return_value = BootstrapReport(
            results={"bucket": step("bucket", StepStatus.SUCCEEDED, "bucket exists")},
            success=True,
        )
        code, output = run_main(bootstrap_resources, "--only", "bucket")
        self.assertEqual(code, 0)
        self.assertIn("All resources are ready", output)
        self.assertEqual(run_bootstrap.call_args.kwargs["resources"], ["bucket"])

    @patch("scripts.bootstrap_resources.run_bootstrap")
    def test_failed_resources_print_their_remediation(self, run_bootstrap):
        # Arrange: one permission failure and one missing setting.
        run_bootstrap.return_value = BootstrapReport(
            results={
                "bucket": step(
                    "bucket",
                    StepStatus.FAILED,
                    "STORAGE_BUCKET_NAME is not set",
                    MissingConfigError(
                        "STORAGE_BUCKET_NAME is not set",
                        "Set STORAGE_BUCKET_NAME in .env to a globally unique name",
                    ),
                ),
                "firestore": step(
                    "firestore",
                    StepStatus.FAILED,
                    "403 Missing or insufficient permissions.",
                    gexc.PermissionDenied("Missing or insufficient permissions."),
                ),
                "indexes": step("indexes", StepStatus.SUCCEEDED, "3 index definitions"),
            },
            success=False,
        )

        code, output = run_main(bootstrap_resources)

        self.assertEqual(code, 1)
        self.assertIn("How to fix bucket", output)
        self.assertIn("Set STORAGE_BUCKET_NAME in .env", output)
        self.assertIn("How to fix firestore", output)
        self.assertIn("roles/datastore.user", output)
        self.assertNotIn("How to fix indexes", output)

    @patch("scripts.bootstrap_resources.run_bootstrap", side_effect=RuntimeError("boom"))
    def test_crash_exits_one(self, _run_bootstrap):
        code, output = run_main(bootstrap_resources)
        self.assertEqual(code, 1)
        self.assertIn("Bootstrap crashed: boom", output)


class SetupStorageBucketMainTests(unittest.TestCase):
    @patch("scripts.setup_storage_bucket.load_settings")
    def test_missing_bucket_name_prints_remediation(self, load_settings):
        load_settings.return_value = make_settings(GOOGLE_CLOUD_PROJECT="aac-dev")
        code, output = run_main(setup_storage_bucket)
        self.assertEqual(code, 1)
        self.assertIn("STORAGE_BUCKET_NAME is not set", output)
        self.assertIn("globally unique", output)


class CheckPrerequisitesMainTests(unittest.TestCase):
    def setUp(self):
        patcher = patch(
            "scripts.check_prerequisites.load_settings",
            return_value=make_settings(GOOGLE_CLOUD_PROJECT="aac-dev"),
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    @patch("scripts.check_prerequisites.PrerequisiteChecker")
    def test_all_passed_with_a_warning_exits_zero(self, checker):
        checker.return_value.run_all.return_value = [
            CheckRecord("tools", "curl", True, "/usr/bin/curl"),
            CheckRecord("firebase", "project ids match", True, "differ", warning=True),
        ]
        code, output = run_main(check_prerequisites)
        self.assertEqual(code, 0)
        self.assertIn("All 2 checks passed", output)
        self.assertIn("1 warning(s)", output)

    @patch("scripts.check_prerequisites.PrerequisiteChecker")
    def test_failure_exits_one_and_lists_common_fixes(self, checker):
        checker.return_value.run_all.return_value = [
            CheckRecord("tools", "curl", True, "/usr/bin/curl"),
            CheckRecord("tools", "gcloud", False, "not found on PATH"),
        ]
        code, output = run_main(check_prerequisites)
        self.assertEqual(code, 1)
        self.assertIn("1 of 2 checks failed", output)
        self.assertIn(COMMON_FIXES[0], output)


class FeatureChecksMainTests(unittest.TestCase):
    @patch("scripts.test_audio_generation.run_feature_checks")
    @patch("scripts.test_audio_generation.load_settings")
    def test_completed_run_exits_zero_even_with_failures(self, load_settings, run_feature_checks):
        load_settings.return_value = make_settings(
            TEST_USER_TOKEN="tok", STEP_DELAY_SECONDS="0.5"
        )
        run_feature_checks.return_value = [
            step("icon_with_audio", StepStatus.FAILED, "HTTP 500"),
            step("audio_from_recording", StepStatus.SKIPPED, "sample missing"),
        ]

        code, output = run_main(test_audio_generation)

        self.assertEqual(code, 0)
        self.assertIn("failed=1", output)
        args, kwargs = run_feature_checks.call_args
        self.assertEqual(args, ("http://localhost:8080", "tok"))
        self.assertEqual(kwargs["delay_seconds"], 0.5)

    @patch("scripts.test_audio_generation.run_feature_checks")
    @patch("scripts.test_audio_generation.load_settings")
    def test_flags_override_settings(self, load_settings, run_feature_checks):
        load_settings.return_value = make_settings(TEST_USER_TOKEN="tok")
        run_feature_checks.return_value = []
        code, _ = run_main(
            test_audio_generation, "--token", "other", "--delay", "0", "--api-base-url", "http://api"
        )
        self.assertEqual(code, 0)
        args, kwargs = run_feature_checks.call_args
        self.assertEqual(args, ("http://api", "other"))
        self.assertEqual(kwargs["delay_seconds"], 0.0)

    @patch("scripts.test_audio_generation.run_feature_checks")
    @patch("scripts.test_audio_generation.load_settings")
    def test_missing_token_exits_one(self, load_settings, run_feature_checks):
        load_settings.return_value = make_settings()
        code, output = run_main(test_audio_generation)
        self.assertEqual(code, 1)
        self.assertIn("TEST_USER_TOKEN", output)
        run_feature_checks.assert_not_called()


class BoardAuthMainTests(unittest.TestCase):
    def setUp(self):
        patcher = patch(
            "scripts.debug_board_auth.load_settings", return_value=make_settings()
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    @patch("scripts.debug_board_auth.run_board_auth_checks")
    def test_exit_code_follows_required_steps(self, run_checks):
        run_checks.return_value = [
            step("missing_header", StepStatus.SUCCEEDED),
            step("create_board", StepStatus.SKIPPED, required=False),
        ]
        code, output = run_main(debug_board_auth)
        self.assertEqual(code, 0)
        self.assertIn("create/delete steps are skipped", output)

        run_checks.return_value = [step("bogus_token", StepStatus.FAILED, "HTTP 200")]
        code, _ = run_main(debug_board_auth)
        self.assertEqual(code, 1)


class AiModelsMainTests(unittest.TestCase):
    @patch("scripts.test_ai_models.VertexAIService")
    @patch("scripts.test_ai_models.load_settings")
    def test_client_construction_failure_exits_one(self, load_settings, service):
        load_settings.return_value = make_settings(GOOGLE_CLOUD_PROJECT="aac-dev")
        service.from_settings.side_effect = RuntimeError("no credentials")
        code, output = run_main(test_ai_models)
        self.assertEqual(code, 1)
        self.assertIn("Smoke test crashed: no credentials", output)

    @patch("scripts.test_ai_models.load_settings")
    def test_missing_project_exits_one(self, load_settings):
        load_settings.return_value = make_settings()
        code, output = run_main(test_ai_models)
        self.assertEqual(code, 1)
        self.assertIn("GOOGLE_CLOUD_PROJECT is not set", output)


class GetIdTokenMainTests(unittest.TestCase):
    def setUp(self):
        patcher = patch(
            "scripts.get_id_token.load_settings",
            return_value=make_settings(FIREBASE_WEB_API_KEY="web-key"),
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    @patch("scripts.get_id_token.sign_in_with_password")
    def test_prints_token(self, sign_in):
        sign_in.return_value = IssuedToken("id-token-value", local_id="uid-1", email="a@example.com")
        code, output = run_main(get_id_token, "--email", "a@example.com", "--password", "pw")
        self.assertEqual(code, 0)
        self.assertIn("id-token-value", output)
        sign_in.assert_called_once_with("web-key", "a@example.com", "pw")

    @patch("scripts.get_id_token.sign_in_with_password")
    def test_rejected_sign_in_exits_one(self, sign_in):
        sign_in.side_effect = IdentityToolkitError("INVALID_PASSWORD", 400)
        code, output = run_main(get_id_token, "--email", "a@example.com", "--password", "pw")
        self.assertEqual(code, 1)
        self.assertIn("Sign-in failed: INVALID_PASSWORD", output)


if __name__ == "__main__":
    unittest.main()
