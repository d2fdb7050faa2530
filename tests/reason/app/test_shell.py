import logging
import pytest

import reason.commands
from reason.app.shell import App, main, run_interactive, run_once
from reason.command import registry
from reason.command.core import AbstractCommand, ExitRequested, IncompatibleInput
from reason.command.executor import InvalidChain
from reason.command.registry import CommandRegistry, build_registry
from reason.data.store import PaperStore, StoreError
from testutils import fake_session


@pytest.fixture
def app(store, shell_config):
    return App(store, shell_config, build_registry(include_plugins=False),
               state_path=shell_config.expanded_state_path)


class TestApp:

    def test_execute_renders_table(self, app):
        text = app.execute("ls at nsdi")
        assert text.splitlines()[0].split() == ["#", "title", "authors", "venue", "year"]
        assert "Zeus" in text
        assert "ShadowTutor" not in text

    def test_read_only_command_does_not_save(self, app, shell_config, tmp_path):
        app.execute("ls")
        assert not (tmp_path / "state.yaml").exists()

    def test_change_is_saved(self, app, tmp_path):
        app.execute("touch 'A New Paper' in 2024")
        saved = PaperStore.load(str(tmp_path / "state.yaml"))
        assert len(saved) == 4
        assert saved[3].title == "A New Paper"
        assert not app.store.dirty

    def test_change_is_saved_when_later_stage_fails(self, app, tmp_path):
        with pytest.raises(IncompatibleInput):
            app.execute("rm zeus | ls")
        saved = PaperStore.load(str(tmp_path / "state.yaml"))
        assert [p.year for p in saved] == [2020, 2017]

    def test_save_failure_does_not_hide_command_error(self, store, shell_config, tmp_path, caplog):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        app = App(store, shell_config, build_registry(include_plugins=False),
                  state_path=str(blocker / "state.yaml"))
        with pytest.raises(IncompatibleInput):
            app.execute("rm zeus | ls")
        assert "Could not write state file" in caplog.text

    def test_save_failure_after_success_is_raised(self, store, shell_config, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        app = App(store, shell_config, build_registry(include_plugins=False),
                  state_path=str(blocker / "state.yaml"))
        with pytest.raises(StoreError):
            app.execute("rm zeus")

    def test_in_memory_app_never_saves(self, store, shell_config, tmp_path):
        app = App(store, shell_config, build_registry(include_plugins=False))
        app.execute("rm zeus")
        assert len(app.store) == 2
        assert not (tmp_path / "state.yaml").exists()

    def test_comment_and_blank_lines(self, app):
        assert app.execute("# rm everything | rm") == ""
        assert app.execute("   ") == ""
        assert len(app.store) == 3

    def test_malformed_chain(self, app):
        with pytest.raises(InvalidChain):
            app.execute("| ls")

    def test_exit(self, app):
        with pytest.raises(ExitRequested):
            app.execute("quit")

    def test_from_config_loads_state(self, store, shell_config):
        store.save(shell_config.expanded_state_path)
        app = App.from_config(shell_config, build_registry(include_plugins=False))
        assert len(app.store) == 3
        assert app.state_path == shell_config.expanded_state_path


class Crashing(AbstractCommand):
    def execute(self, input, store, config):
        raise RuntimeError("kaput")


class TestInteractive:

    def test_loop_until_exit(self, app, fake_session, capsys):
        session = fake_session(["ls at icpp", "bogus", KeyboardInterrupt, "", "exit", "ls"])
        assert run_interactive(app, session) == 0

        out = capsys.readouterr().out
        assert "ShadowTutor" in out
        assert "Error: Unknown command 'bogus'. Type 'help' for a list of commands." in out
        assert session.prompts == [">> "] * 5
        assert session.responses == ["ls"]

    def test_loop_until_eof(self, app, fake_session, capsys):
        session = fake_session(["ls by Vaswani"])
        assert run_interactive(app, session) == 0
        assert "Attention Is All You Need" in capsys.readouterr().out
        assert session.responses == []

    def test_errors_do_not_end_the_loop(self, app, fake_session, capsys):
        session = fake_session(["ls |", "rm", "ls in 2017"])
        run_interactive(app, session)
        out = capsys.readouterr().out
        assert "Error: Command cannot end with a pipe." in out
        assert out.count("Error:") == 2
        assert "Attention Is All You Need" in out

    def test_unexpected_failure_is_logged(self, store, shell_config, fake_session, capsys, caplog):
        app = App(store, shell_config, CommandRegistry({"crash": Crashing}))
        with caplog.at_level(logging.ERROR, logger="reason.app.shell"):
            run_interactive(app, fake_session(["crash", "crash"]))
        assert capsys.readouterr().out.count("Error: kaput") == 2
        assert "Unexpected failure" in caplog.text

    def test_custom_prompt(self, store, shell_config, fake_session):
        app = App(store, shell_config.model_copy(update={"prompt": "reason$ "}),
                  build_registry(include_plugins=False))
        session = fake_session([])
        run_interactive(app, session)
        assert session.prompts == ["reason$ "]


class TestRunOnce:

    def test_success(self, app, capsys):
        assert run_once(app, "cat zeus") == 0
        assert "[2] Zeus" in capsys.readouterr().out

    def test_failure(self, app, capsys):
        assert run_once(app, "bogus") == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err.startswith("Error: Unknown command 'bogus'")

    def test_exit(self, app, capsys):
        assert run_once(app, "exit") == 0
        assert capsys.readouterr().out == ""


greet_module = """
from reason.command.core import AbstractCommand, Message
from reason.command.registry import register_command

@register_command("greet")
class Greet(AbstractCommand):
    \"\"\"Greet someone.\"\"\"

    def execute(self, input, store, config):
        return Message("Hello, " + " ".join(input.params) + "!")
"""


class TestMain:

    def test_command_with_state_path(self, tmp_path, capsys):
        state = str(tmp_path / "papers" / "state.yaml")
        assert main(["--state-path", state, "-c", "touch 'From The Command Line' by Someone"]) == 0
        assert main(["--state-path", state, "-c", "ls by someone"]) == 0
        assert "From The Command Line" in capsys.readouterr().out
        assert len(PaperStore.load(state)) == 1

    def test_state_path_from_config_file(self, tmp_path, capsys):
        state = tmp_path / "configured.yaml"
        config_file = tmp_path / "reason.toml"
        config_file.write_text(f'state_path = "{state}"\n')
        assert main(["--config", str(config_file), "-c", "touch Configured"]) == 0
        assert PaperStore.load(str(state))[0].title == "Configured"

    def test_failing_command(self, tmp_path, capsys):
        assert main(["--state-path", str(tmp_path / "s.yaml"), "-c", "ls | | cat"]) == 1
        assert "Commands can only be chained with one pipe character." in capsys.readouterr().err

    def test_broken_config_file(self, tmp_path, capsys):
        config_file = tmp_path / "reason.toml"
        config_file.write_text("state_path = \n")
        assert main(["--config", str(config_file), "-c", "ls"]) == 1
        assert "Error:" in capsys.readouterr().err

    @pytest.mark.parametrize("levels", ["root", "reason:LOUD"])
    def test_bad_logger_levels(self, tmp_path, capsys, levels):
        assert main(["--state-path", str(tmp_path / "s.yaml"), "--logger_levels", levels, "-c", "ls"]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_corrupt_state_file(self, tmp_path, capsys):
        state = tmp_path / "state.yaml"
        state.write_text("papers: [unclosed")
        assert main(["--state-path", str(state), "-c", "ls"]) == 1
        assert "Could not read state file" in capsys.readouterr().err

    def test_load_module(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setattr(registry, "_builtin_commands", dict(registry._builtin_commands))
        module_file = tmp_path / "greetings.py"
        module_file.write_text(greet_module)
        status = main(["--load-module", str(module_file),
                       "--state-path", str(tmp_path / "s.yaml"),
                       "-c", "greet world"])
        assert status == 0
        assert capsys.readouterr().out == "Hello, world!\n"
