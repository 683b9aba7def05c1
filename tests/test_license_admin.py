"""
Tests for the license administration CLI.
"""

import json
from unittest.mock import patch

import pytest
import requests

import license_admin


@pytest.fixture
def mock_client():
    with patch("license_admin.AdminClient") as cls:
        yield cls.return_value


def test_requires_password(monkeypatch, capsys):
    monkeypatch.delenv("ADMIN_PASSWORD", raising=False)
    assert license_admin.main(["--password", "", "list"]) == 1
    assert "No admin password" in capsys.readouterr().err


def test_list(mock_client, capsys):
    mock_client.list_licenses.return_value = [
        {"id": 2, "key": "BBBB-BBBB-BBBB-BBBB", "holder_name": "Bea", "email": "b@x.test",
         "is_active": False, "expires_at": None},
    ]
    assert license_admin.main(["--password", "pw", "list"]) == 0
    out = capsys.readouterr().out
    assert "BBBB-BBBB-BBBB-BBBB" in out
    assert "inactive" in out


def test_create_prints_key(mock_client, capsys):
    mock_client.create_license.return_value = {"id": 1, "key": "AAAA-AAAA-AAAA-AAAA"}

    code = license_admin.main([
        "--password", "pw", "create", "--holder", "Ada", "--email", "ada@x.test",
        "--expires", "2030-01-01",
    ])

    assert code == 0
    assert capsys.readouterr().out.strip() == "AAAA-AAAA-AAAA-AAAA"
    mock_client.create_license.assert_called_once_with("Ada", "ada@x.test", expires_at="2030-01-01")


def test_create_json(mock_client, capsys):
    mock_client.create_license.return_value = {"id": 1, "key": "K"}
    license_admin.main(["--password", "pw", "--json", "create", "--holder", "Ada", "--email", "a@x.test"])
    assert json.loads(capsys.readouterr().out) == {"id": 1, "key": "K"}


@pytest.mark.parametrize("command,expected", [("activate", True), ("deactivate", False)])
def test_toggle(mock_client, command, expected):
    assert license_admin.main(["--password", "pw", command, "7"]) == 0
    mock_client.set_active.assert_called_once_with(7, expected)


def test_delete(mock_client):
    assert license_admin.main(["--password", "pw", "delete", "7"]) == 0
    mock_client.delete_license.assert_called_once_with(7)


def test_http_error_exit_code(mock_client, capsys):
    mock_client.delete_license.side_effect = requests.ConnectionError("refused")
    assert license_admin.main(["--password", "pw", "delete", "7"]) == 1
    assert "refused" in capsys.readouterr().err
