import pytest

from barblocks.blocks import BlockError, State
from barblocks.custom import (
    CustomInput,
    block_output,
    choose_shell,
    command_cycle,
    parse_json_input,
    run_command,
)

DANGER = '{"icon":"weather_thunder","state":"Critical", "text": "Danger!"}'


def test_parse_json_documented_example():
    parsed = parse_json_input(DANGER)
    assert parsed == CustomInput(
        icon="weather_thunder", state=State.CRITICAL, text="Danger!", short_text=None
    )


def test_parse_json_defaults():
    assert parse_json_input("{}") == CustomInput()


@pytest.mark.parametrize(
    "text", ["not json", "[1, 2]", '{"state": "Bogus"}', '{"text": 5}', '{"short_text": 1}']
)
def test_parse_json_invalid(text):
    with pytest.raises(BlockError, match="Invalid JSON"):
        parse_json_input(text)


def test_choose_shell(monkeypatch):
    monkeypatch.setenv("SHELL", "/bin/zsh")
    assert choose_shell("bash") == "bash"
    assert choose_shell() == "/bin/zsh"
    monkeypatch.delenv("SHELL")
    assert choose_shell() == "sh"


def test_run_command_trims_output():
    assert run_command("sh", "echo ON") == "ON"


def test_run_command_invalid_utf8():
    with pytest.raises(BlockError, match="invalid UTF-8"):
        run_command("sh", "printf '\\377'")


def test_run_command_missing_shell():
    with pytest.raises(BlockError, match="failed to run command"):
        run_command("/nonexistent/shell", "echo ON")


def test_command_cycle_rotates():
    it = command_cycle(["echo ON", "echo OFF"], None)
    assert [next(it) for _ in range(3)] == ["echo ON", "echo OFF", "echo ON"]


def test_command_cycle_single_command():
    it = command_cycle(None, "uname -r")
    assert [next(it) for _ in range(2)] == ["uname -r", "uname -r"]


def test_command_cycle_requires_something():
    with pytest.raises(BlockError, match="either 'command' or 'cycle'"):
        command_cycle(None, None)
    with pytest.raises(BlockError):
        command_cycle([], "echo ON")


def test_block_output_text():
    assert block_output("hello") == ({"text": "hello"}, None)


def test_block_output_hides_empty_text():
    assert block_output("", hide_when_empty=True) is None
    assert block_output("", hide_when_empty=False) == ({"text": ""}, None)


def test_block_output_json():
    values, state = block_output(DANGER, json_mode=True)
    assert values == {"text": "Danger!", "icon": "weather_thunder"}
    assert state is State.CRITICAL


def test_block_output_json_short_text_and_hide():
    values, _ = block_output('{"text": "a", "short_text": "b"}', json_mode=True)
    assert values == {"text": "a", "short_text": "b"}
    assert block_output('{"icon": "x"}', json_mode=True, hide_when_empty=True) is None


def test_block_output_json_invalid_raises_even_when_hiding():
    with pytest.raises(BlockError):
        block_output("", json_mode=True, hide_when_empty=True)