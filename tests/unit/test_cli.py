from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from receipt_split.cli import app

runner = CliRunner()


def test_healthcheck() -> None:
    result = runner.invoke(app, ["healthcheck"])

    assert result.exit_code == 0
    assert "receipt-split is ready" in result.stdout


def test_billing_window_reports_exhausted_allowance() -> None:
    result = runner.invoke(
        app,
        [
            "billing-window",
            "--anchor",
            "2025-01-31T09:30:00+00:00",
            "--now",
            "2025-03-15T09:30:00+00:00",
            "--used",
            "4",
            "--stored-start",
            "2025-02-28T09:30:00+00:00",
            "--stored-end",
            "2025-03-28T09:30:00+00:00",
        ],
    )

    assert result.exit_code == 0
    assert result.stdout.splitlines() == [
        "Window: 2025-02-28T09:30:00+00:00 -> 2025-03-28T09:30:00+00:00",
        "Free bills: 4/4 used | Credits: 0",
        "Can host new bill: no",
    ]


def test_billing_window_resets_stale_usage() -> None:
    result = runner.invoke(
        app,
        [
            "billing-window",
            "--anchor",
            "2025-01-31T09:30:00",
            "--now",
            "2025-03-15T09:30:00",
            "--used",
            "4",
            "--credits",
            "1",
        ],
    )

    assert result.exit_code == 0
    assert "Free bills: 0/4 used | Credits: 1" in result.stdout
    assert "Can host new bill: yes" in result.stdout


def test_billing_window_rejects_bad_timestamp() -> None:
    result = runner.invoke(app, ["billing-window", "--anchor", "yesterday"])

    assert result.exit_code != 0


def test_decode_legacy_lists_items(tmp_path: Path) -> None:
    input_file = tmp_path / "legacy.json"
    input_file.write_text(
        json.dumps(
            {
                "clientReceiptId": "r-1",
                "items": [
                    {"name": "Pizza", "quantity": 2, "price": 18.5, "id": "p"},
                    {"name": "Water"},
                ],
            }
        ),
        encoding="utf-8",
    )

    result = runner.invoke(
        app,
        ["decode-legacy", "--input", str(input_file), "--client-receipt-id", "r-1"],
    )

    assert result.exit_code == 0
    assert result.stdout.splitlines() == [
        "Items: 2",
        "p\t2 x Pizza\t18.50",
        "sort:1\t1 x Water\t-",
    ]


def test_decode_legacy_reports_rejection(tmp_path: Path) -> None:
    input_file = tmp_path / "legacy.json"
    input_file.write_text('{"receipts": []}', encoding="utf-8")

    result = runner.invoke(app, ["decode-legacy", "--input", str(input_file)])

    assert result.exit_code == 1
    assert "Rejected: receipt_list" in result.stdout
