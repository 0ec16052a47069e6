from __future__ import annotations

import logging
import runpy

import month_summary.cli as cli_mod


def test_python_m_entrypoint_invokes_cli_app(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    called = {"value": False}

    def _fake_app() -> None:
        called["value"] = True

    monkeypatch.setattr(cli_mod, "app", _fake_app)
    runpy.run_module("month_summary.__main__", run_name="__main__")

    assert called["value"] is True


def test_package_logger_has_null_handler() -> None:
    logger = logging.getLogger("month_summary")

    assert any(isinstance(h, logging.NullHandler) for h in logger.handlers)
