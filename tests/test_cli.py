import json
import pytest
from unittest.mock import MagicMock, patch

from af_roundtrip.cli import build_parser, main
from af_roundtrip.runner.driver import RoundTripResult


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("af_roundtrip.cli.setup_logging") as mock_setup:
        yield mock_setup


@pytest.fixture
def zap_services():
    with patch("af_roundtrip.cli.ZapApiClient") as client_cls, \
            patch("af_roundtrip.cli.ZapSessionService") as session_cls, \
            patch("af_roundtrip.cli.ZapPlanService") as plans_cls:
        client_cls.return_value.__enter__.return_value = client_cls.return_value
        yield client_cls, session_cls, plans_cls


def _args(context_dir, output_dir, *extra):
    return ["run", "--input", str(context_dir), "--output", str(output_dir), *extra]


class TestRunCommand:
    def test_run_success(self, zap_services, context_dir, output_dir, tmp_path):
        client_cls, session_cls, plans_cls = zap_services
        results = [RoundTripResult(source=context_dir / "a", success=True)]

        with patch("af_roundtrip.cli.run_round_trip", return_value=results) as mock_run:
            code = main(_args(context_dir, output_dir, "--plan-dir", str(tmp_path / "plans")))

        assert code == 0
        args, kwargs = mock_run.call_args
        assert args[0] is session_cls.return_value
        assert args[1] is plans_cls.return_value
        assert args[2] == context_dir
        assert args[3] == output_dir
        assert kwargs["fail_fast"] is True
        assert plans_cls.call_args.args[1] == tmp_path / "plans"
        client_cls.return_value.wait_until_ready.assert_not_called()

    def test_keep_going_and_failures(self, zap_services, context_dir, output_dir, capsys):
        results = [
            RoundTripResult(source=context_dir / "a", success=True),
            RoundTripResult(source=context_dir / "b", error="ValueError: bad"),
        ]

        with patch("af_roundtrip.cli.run_round_trip", return_value=results) as mock_run:
            code = main(_args(context_dir, output_dir, "--keep-going"))

        assert code == 1
        assert mock_run.call_args.kwargs["fail_fast"] is False
        assert "FAILED" in capsys.readouterr().out

    def test_wait_for_zap_and_summary(self, zap_services, context_dir, output_dir, tmp_path):
        client_cls, _, _ = zap_services
        summary = tmp_path / "summary.json"

        with patch("af_roundtrip.cli.run_round_trip", return_value=[]):
            code = main(_args(context_dir, output_dir, "--wait-for-zap", "30",
                              "--summary", str(summary)))

        assert code == 0
        client_cls.return_value.wait_until_ready.assert_called_once_with(30.0)
        assert json.loads(summary.read_text())["total"] == 0

    def test_compare_after_run(self, zap_services, context_dir, output_dir, capsys):
        source = context_dir / "basic-auth.context"
        exported = output_dir / "basic-auth.context"
        exported.write_text("<configuration/>\n")
        results = [RoundTripResult(source=source, output=exported, success=True)]

        with patch("af_roundtrip.cli.run_round_trip", return_value=results):
            code = main(_args(context_dir, output_dir, "--compare"))

        assert code == 1
        assert "DIFFERS" in capsys.readouterr().out

    def test_errors_propagate(self, zap_services, context_dir, output_dir):
        with patch("af_roundtrip.cli.run_round_trip", side_effect=ValueError("boom")):
            with pytest.raises(ValueError, match="boom"):
                main(_args(context_dir, output_dir))


class TestCompareCommand:
    def test_all_identical(self, context_dir, output_dir, capsys):
        for src in context_dir.iterdir():
            (output_dir / src.name).write_text(src.read_text())

        code = main(["compare", "--input", str(context_dir), "--output", str(output_dir)])

        assert code == 0
        assert "all identical" in capsys.readouterr().out

    def test_missing_output(self, context_dir, output_dir, capsys):
        code = main(["compare", "--input", str(context_dir), "--output", str(output_dir)])

        assert code == 1
        assert "MISSING" in capsys.readouterr().out


def test_command_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_logging_options_passed(no_logging_setup, context_dir, output_dir):
    main(["--log-level", "debug", "--json-logs", "compare",
          "--input", str(context_dir), "--output", str(output_dir)])

    no_logging_setup.assert_called_once_with(
        level="debug", log_dir=None, enable_file=False, json_format=True
    )
