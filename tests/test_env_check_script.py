"""Tests for the environment validation and drift detection script."""

from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from pathlib import Path

import pytest

from scripts import check_env

REQUIRED_ENV_KEYS = [
    "GOOGLE_REDIRECT_URI",
    "TOKEN_ENCRYPTION_SECRET",
    "ADMIN_USERNAME",
    "ADMIN_PASSWORD",
    "GMAIL_MAX_RESULTS",
]

VALID_ENV = {
    "GOOGLE_REDIRECT_URI": "https://mail.example.com/google-auth-callback",
    "TOKEN_ENCRYPTION_SECRET": "encryption-secret",
    "ADMIN_USERNAME": "admin",
    "ADMIN_PASSWORD": "admin-password",
}


def _write_env(env_path: Path, **values: str) -> None:
    contents = "\n".join(f"{key}={value}" for key, value in values.items())
    env_path.write_text(contents + "\n", encoding="utf-8")


def _clear_required_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # check_env writes .env values straight into os.environ; setenv first so
    # teardown restores (or removes) every key it may have touched.
    for key in REQUIRED_ENV_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


@pytest.mark.parametrize("command", ["record", "verify", "check"])
def test_main_requires_existing_env_file(tmp_path: Path, command: str) -> None:
    env_file = tmp_path / ".missing-env"
    hash_file = tmp_path / ".env.sha256"

    argv = [command, "--env-file", str(env_file)]
    if command != "check":
        argv.extend(["--hash-file", str(hash_file)])

    assert check_env.main(argv) == check_env.EXIT_RUNTIME_ERROR


def test_record_and_verify_detects_mismatched_checksum(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    env_file = tmp_path / ".env"
    hash_file = tmp_path / ".env.sha256"
    argv = ["--env-file", str(env_file), "--hash-file", str(hash_file)]

    _clear_required_env(monkeypatch)
    _write_env(env_file, **VALID_ENV)
    assert check_env.main(["record", *argv]) == check_env.EXIT_OK
    assert hash_file.read_text(encoding="utf-8").strip()

    _clear_required_env(monkeypatch)
    assert check_env.main(["verify", *argv]) == check_env.EXIT_OK

    _write_env(env_file, **{**VALID_ENV, "ADMIN_PASSWORD": "changed"})
    _clear_required_env(monkeypatch)
    assert check_env.main(["verify", *argv]) == check_env.EXIT_CHECKSUM_ERROR


def test_verify_without_baseline_is_a_runtime_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    env_file = tmp_path / ".env"
    _clear_required_env(monkeypatch)
    _write_env(env_file, **VALID_ENV)

    exit_code = check_env.main(
        ["verify", "--env-file", str(env_file), "--hash-file", str(tmp_path / "absent")]
    )

    assert exit_code == check_env.EXIT_RUNTIME_ERROR


def test_validation_failure_for_missing_required_values(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    env_file = tmp_path / ".env"
    hash_file = tmp_path / ".env.sha256"

    _clear_required_env(monkeypatch)
    values = dict(VALID_ENV)
    values.pop("TOKEN_ENCRYPTION_SECRET")
    _write_env(env_file, **values)

    exit_code = check_env.main(
        ["record", "--env-file", str(env_file), "--hash-file", str(hash_file)]
    )
    assert exit_code == check_env.EXIT_VALIDATION_ERROR
    assert not hash_file.exists()


@pytest.mark.parametrize(
    "override",
    [
        {"GOOGLE_REDIRECT_URI": "/google-auth-callback"},
        {"GMAIL_MAX_RESULTS": "0"},
    ],
)
def test_inconsistent_values_fail_validation(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, override: dict
) -> None:
    env_file = tmp_path / ".env"
    _clear_required_env(monkeypatch)
    _write_env(env_file, **{**VALID_ENV, **override})

    assert check_env.main(["check", "--env-file", str(env_file)]) == check_env.EXIT_VALIDATION_ERROR


def test_check_prints_summary_without_secrets(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    env_file = tmp_path / ".env"
    _clear_required_env(monkeypatch)
    _write_env(env_file, **VALID_ENV)

    assert check_env.main(["check", "--env-file", str(env_file)]) == check_env.EXIT_OK

    output = capsys.readouterr().out
    assert "https://mail.example.com/google-auth-callback" in output
    assert "encryption-secret" not in output
    assert "admin-password" not in output
