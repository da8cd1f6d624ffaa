import allure
from click.testing import CliRunner

from mission_control import __version__
from mission_control.main import mission_control

pytestmark = [
    allure.epic("Operations"),
    allure.feature("Command Line"),
]


def test_version():
    assert __version__


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(mission_control, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output
