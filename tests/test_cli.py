"""Tests for the flo command line: dispatch, command output and exit codes."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from flo import __version__
from flo.cli import _list, _logout, _run, _status, _whoami, main
from flo.core.config import AppConfig, StorageConfig
from flo.core.errors import AuthenticationError, UnknownResourceError
from flo.domains.crm import CrmFacade
from flo.domains.hr import HrFacade

from conftest import make_ops


@pytest.fixture
def config(tmp_path):
    return AppConfig(storage=StorageConfig(db_path=tmp_path / "state" / "flo.db"))


# ── Dispatch ────────────────────────────────────────────────────────────


class TestMain:
    def test_no_command_exits(self):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 1

    @patch("flo.cli._run")
    def test_status_dispatches(self, mock_run):
        main(["status", "--json"])
        mock_run.assert_called_once()

    @patch("flo.cli._run")
    def test_logout_passes_handler(self, mock_run):
        main(["logout"])
        mock_run.assert_called_once_with(_logout)

    async def test_list_arguments_reach_handler(self, client):
        with patch("flo.cli._run") as mock_run:
            main(["--quiet", "list", "hr", "employees", "--refresh", "--json"])
        command = mock_run.call_args.args[0]

        with patch("flo.cli._list", new=AsyncMock()) as handler:
            await command(client)

        handler.assert_awaited_once_with(client, "hr", "employees", True, True)

    async def test_login_arguments_reach_client(self, client):
        with patch("flo.cli._run") as mock_run:
            main(["login", "--email", "ada@example.com", "--password", "secret"])
        command = mock_run.call_args.args[0]
        client.login = AsyncMock(return_value={"user": {"email": "ada@example.com"}})

        await command(client)

        client.login.assert_awaited_once_with("ada@example.com", "secret")

    def test_login_requires_credentials(self):
        with pytest.raises(SystemExit) as exc:
            main(["login", "--email", "ada@example.com"])
        assert exc.value.code == 2


# ── Runner ──────────────────────────────────────────────────────────────


class TestRun:
    def test_runs_command_with_registered_domains(self, config):
        seen = {}

        async def command(client):
            seen["domains"] = set(client.domains)
            seen["authenticated"] = client.is_authenticated

        _run(command, config)

        assert seen["domains"] == {"assets", "crm", "finance", "hr", "vendor", "projects"}
        assert seen["authenticated"] is False
        assert (config.storage.db_path).exists()

    def test_api_error_exits_1(self, config, capsys):
        with pytest.raises(SystemExit) as exc:
            _run(AsyncMock(side_effect=AuthenticationError("Invalid credentials")), config)
        assert exc.value.code == 1
        assert "Error: Invalid credentials" in capsys.readouterr().err

    def test_unknown_domain_exits_2(self, config, capsys):
        with pytest.raises(SystemExit) as exc:
            _run(lambda client: _list(client, "payroll", "runs"), config)
        assert exc.value.code == 2
        assert capsys.readouterr().err.strip() == "Error: Unknown domain 'payroll'"

    def test_unexpected_key_error_is_not_swallowed(self, config):
        with pytest.raises(KeyError, match="items"):
            _run(AsyncMock(side_effect=KeyError("items")), config)

    def test_logout_when_logged_out(self, config, capsys):
        _run(_logout, config)
        assert capsys.readouterr().out.strip() == "Not logged in"


# ── Handlers ────────────────────────────────────────────────────────────


class TestHandlers:
    async def test_list_table(self, client, capsys):
        ops = {
            "employees": make_ops([
                {"id": "e1", "first_name": "Ada", "last_name": "Lovelace", "status": "active"},
            ]),
            "leave_requests": make_ops(),
            "onboardings": make_ops(),
        }
        client.register_domain(HrFacade(client, ops=ops))

        await _list(client, "hr", "employees")

        out = capsys.readouterr().out
        assert "hr/employees: 1 item(s)" in out
        assert "Ada Lovelace  [active]" in out

    async def test_list_json_and_refresh(self, client, capsys):
        stages = make_ops([{"id": "s1", "name": "Prospecting"}])
        facade = client.register_domain(CrmFacade(client, ops={"stages": stages}))
        await facade.stages.all()

        await _list(client, "crm", "stages", refresh=True, json_output=True)

        assert json.loads(capsys.readouterr().out) == [{"id": "s1", "name": "Prospecting"}]
        assert stages.list.await_count == 2

    async def test_list_unknown_kind(self, client):
        client.register_domain(CrmFacade(client))
        with pytest.raises(UnknownResourceError, match="Unknown resource kind"):
            await _list(client, "crm", "widgets")

    async def test_status_json(self, client, capsys):
        client.register_domain(CrmFacade(client))
        await _status(client, json_output=True)
        result = json.loads(capsys.readouterr().out)
        assert result["version"] == __version__
        assert result["authenticated"] is False
        assert "crm" in result["domains"]

    async def test_status_text(self, client, capsys):
        await client.credentials.set("t1", "r1")
        await _status(client)
        out = capsys.readouterr().out
        assert "Flo Status" in out
        assert "authenticated" in out
        assert "Domains:          none" in out

    async def test_whoami_logged_out(self, client, capsys):
        await _whoami(client)
        assert capsys.readouterr().out.strip() == "Not logged in"

    async def test_whoami_prints_profile(self, client, capsys):
        await client.credentials.set("t1")
        client.auth.get_me = AsyncMock(return_value={"id": "u1", "email": "ada@example.com"})
        await _whoami(client)
        assert json.loads(capsys.readouterr().out)["email"] == "ada@example.com"
