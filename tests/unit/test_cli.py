"""
Unit Tests for the Command-Line Interface.
"""

from unittest.mock import patch

import pytest

from storebench.cli import create_parser, main, overrides_from_args


class TestParser:
    """Test cases for argument parsing."""

    def test_run_overrides(self) -> None:
        args = create_parser().parse_args(
            ["run", "cache-hot-keys", "--size", "custom", "--custom-size", "10", "--iterations", "4", "--no-save"]
        )

        assert args.names == ["cache-hot-keys"]
        assert overrides_from_args(args) == {
            "size": "custom",
            "custom_size": 10,
            "iterations": 4,
            "save_results": False,
        }

    def test_unset_flags_are_not_overrides(self) -> None:
        args = create_parser().parse_args(["run", "--all"])

        assert overrides_from_args(args) == {}

    def test_run_requires_names_or_all(self) -> None:
        with pytest.raises(SystemExit):
            main(["run"])

    def test_list(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("storebench.cli.configure_logging"):
            assert main(["list"]) == 0

        output = capsys.readouterr().out
        assert "single-document-insertion" in output
        assert "cache-bulk-set" in output


class TestRunValidation:
    """Test cases for option validation before any store is touched."""

    @pytest.mark.parametrize(
        "argv",
        [
            ["run", "single-document-insertion", "--iterations", "0"],
            ["run", "single-document-insertion", "--size", "custom"],
            ["run", "--all", "--custom-size", "-5", "--size", "custom"],
        ],
    )
    def test_invalid_options_exit_with_usage_error(
        self, argv: list[str], capsys: pytest.CaptureFixture[str]
    ) -> None:
        with (
            patch("storebench.cli.configure_logging"),
            patch("storebench.cli.MongoDBAdapter") as mongo_cls,
            patch("storebench.cli.PostgreSQLAdapter") as postgres_cls,
        ):
            with pytest.raises(SystemExit) as exc_info:
                main(argv)

        assert exc_info.value.code == 2
        assert "invalid options" in capsys.readouterr().err
        mongo_cls.assert_not_called()
        postgres_cls.assert_not_called()
