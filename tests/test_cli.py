"""
Tests for the command line parser and the commands that need no model.
"""

import json

import pytest

from cli.main import COMMANDS, main
from cli.parser import setup_argument_parser
from config import reload_config


class TestParser:
    """Tests for argument parsing."""

    @pytest.mark.parametrize(
        "argv",
        [
            ["seed", "--force"],
            ["add", "food", "Idli batter", "--tags", "idli,homemade"],
            ["list"],
            ["search", "taxi"],
            ["people", "--role", "driver"],
            ["tasks", "--overdue"],
            ["stats"],
            ["history", "--limit", "5"],
        ],
    )
    def test_every_subcommand_has_a_handler(self, argv):
        args = setup_argument_parser().parse_args(argv)
        assert args.command in COMMANDS

    def test_search_arguments(self):
        args = setup_argument_parser().parse_args(
            ["search", "airport taxi", "--type", "transport", "--type", "rental", "--limit", "3"]
        )
        assert args.query == "airport taxi"
        assert args.type == ["transport", "rental"]
        assert args.limit == 3
        assert args.db is None

    def test_search_default_limit(self):
        args = setup_argument_parser().parse_args(["search", "taxi"])
        assert args.limit == 20

    def test_list_all_flag(self):
        args = setup_argument_parser().parse_args(["list", "--all", "--status", "pending"])
        assert args.include_structural is True
        assert args.status == "pending"

    def test_unknown_type_rejected(self):
        with pytest.raises(SystemExit):
            setup_argument_parser().parse_args(["add", "spaceship", "Rocket"])


class TestCommands:
    """Commands that only read the database."""

    def test_stats_on_empty_database(self, tmp_path, capsys):
        main(["stats", "--db", str(tmp_path / "tarai.db")])

        output = capsys.readouterr().out
        assert "Entities" in output
        assert (tmp_path / "tarai.db").exists()

    def test_list_on_empty_database(self, tmp_path, capsys):
        main(["list", "--db", str(tmp_path / "tarai.db")])
        assert "No entities found" in capsys.readouterr().out

    def test_no_command_prints_help(self, capsys):
        main([])
        assert "usage" in capsys.readouterr().out.lower()

    def test_history_on_empty_database(self, tmp_path, capsys):
        main(["history", "--db", str(tmp_path / "tarai.db")])
        assert "No searches yet" in capsys.readouterr().out


class TestStartupSeeding:
    """demo.seed_on_start loads sample data before a command runs."""

    @pytest.fixture
    def seed_on_start(self, tmp_path, monkeypatch):
        path = tmp_path / "system.json"
        path.write_text(json.dumps({"demo": {"seed_on_start": True}}))
        monkeypatch.setenv("TARAI_CONFIG", str(path))
        reload_config()
        yield
        monkeypatch.undo()
        reload_config()

    def test_failed_seed_does_not_block_the_command(
        self, seed_on_start, tmp_path, monkeypatch, capsys
    ):
        calls = []

        async def broken(*args, **kwargs):
            calls.append(kwargs)
            raise RuntimeError("sample data unavailable")

        monkeypatch.setattr("demo.sample_data.load_demo_data", broken)

        main(["stats", "--db", str(tmp_path / "tarai.db")])

        assert len(calls) == 1
        assert "Entities" in capsys.readouterr().out

    def test_seed_command_loads_once(self, seed_on_start, tmp_path, monkeypatch, capsys):
        calls = []

        async def fake_load(service, people, tasks, force=False):
            calls.append(force)
            return {"entities": 0, "links": 0, "tasks": 0, "skipped": 3}

        monkeypatch.setattr("demo.sample_data.load_demo_data", fake_load)
        monkeypatch.setattr("cli.commands.load_demo_data", fake_load)

        main(["seed", "--db", str(tmp_path / "tarai.db")])

        assert calls == [False]
        assert "already present" in capsys.readouterr().out
