"""
Tests for the __main__.py entrypoint to the operator as an executable
"""

# Standard
from unittest import mock

# Third Party
import pytest
import yaml

# First Party
import aconfig

# Local
from myapp_operator import config, crd
from myapp_operator.__main__ import main
from myapp_operator.cmd.run_controller_cmd import RunControllerCmd
from myapp_operator.log_format import MyAppJsonFormatter
from myapp_operator.test_helpers.helpers import library_config, setup_cr

## Helpers #####################################################################


class AlogConfigureMock:
    def __init__(self):
        self.kwargs = None

    def __call__(self, **kwargs):
        self.kwargs = kwargs


@pytest.fixture
def alog_mock():
    alog_mock = AlogConfigureMock()
    with mock.patch("alog.configure", alog_mock):
        yield alog_mock


## Tests #######################################################################


def test_generate_crd_file(tmp_path, alog_mock):
    """Make sure generate-crd writes the CRD to the given file"""
    output = tmp_path / "crd.yaml"
    main(["generate-crd", "--output", str(output)])
    assert yaml.safe_load(output.read_text(encoding="utf-8")) == crd.make_crd()


def test_generate_crd_stdout(capsys, alog_mock):
    """Make sure generate-crd prints the CRD without an output file"""
    main(["generate-crd"])
    assert yaml.safe_load(capsys.readouterr().out) == crd.make_crd()


def test_default_command(alog_mock):
    """Make sure run is the default command"""
    with mock.patch.object(RunControllerCmd, "cmd") as run_cmd:
        main([])
    run_cmd.assert_called_once()
    assert run_cmd.call_args.args[0].cr is None


def test_config_overrides(alog_mock):
    """Make sure library config values can be set from the command line"""
    webhook_config = aconfig.Config(dict(config.webhook), override_env_vars=False)
    with library_config(
        resync_interval_seconds=300, log_json=False, webhook=webhook_config
    ):
        with mock.patch.object(RunControllerCmd, "cmd"):
            main(
                [
                    "run",
                    "--resync_interval_seconds",
                    "30",
                    "--webhook.port",
                    "9443",
                    "--log_json",
                ]
            )
        assert config.resync_interval_seconds == 30
        assert config.webhook.port == 9443
        assert isinstance(alog_mock.kwargs["formatter"], MyAppJsonFormatter)
    assert config.webhook.port == 8443


def test_pretty_logging(alog_mock):
    """Make sure the pretty formatter is used by default"""
    with mock.patch.object(RunControllerCmd, "cmd"):
        main(["run"])
    assert alog_mock.kwargs["formatter"] == "pretty"
    assert alog_mock.kwargs["default_level"] == config.log_level


def test_cr_requires_dry_run(alog_mock, tmp_path):
    """Make sure --cr is rejected outside of a dry run"""
    cr_file = tmp_path / "cr.yaml"
    cr_file.write_text(yaml.safe_dump(setup_cr()), encoding="utf-8")
    with pytest.raises(AssertionError):
        main(["run", "--cr", str(cr_file)])


def test_run_dry_run_cr(alog_mock, tmp_path):
    """Make sure a dry run applies the CR and shuts down"""
    cr_file = tmp_path / "cr.yaml"
    cr_file.write_text(yaml.safe_dump(setup_cr()), encoding="utf-8")
    metrics_config = aconfig.Config(
        {"enabled": False, "port": 8080}, override_env_vars=False
    )
    with library_config(dry_run=False, metrics=metrics_config):
        with mock.patch("signal.signal"), mock.patch.object(
            RunControllerCmd,
            "_apply_cr",
            side_effect=RunControllerCmd._apply_cr,  # pylint: disable=protected-access
        ) as apply_cr:
            main(["run", "--dry_run", "--cr", str(cr_file)])
    apply_cr.assert_called_once()
    assert config.dry_run is False
