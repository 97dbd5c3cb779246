import io
import os
import sys

import pytest

from mishell.environment import Environment
from mishell.executor import (
    ONLY_PIPE,
    ONLY_PIPES,
    Executor,
    PipelineError,
    check_pipeline,
    status_from_returncode,
)
from mishell.parser import REDIRECTION_SYNTAX_ERROR, build_sentence, parse_command
from mishell.pathsearch import command_not_found
from mishell.sentence import Flag, Sentence

PY = sys.executable


@pytest.fixture
def env():
    e = Environment()
    e.set("PATH", os.path.dirname(PY))
    return e


@pytest.fixture
def streams():
    return io.StringIO(), io.StringIO()


def make_reader(lines):
    it = iter(lines)
    return lambda prompt: next(it, None)


def written_order(commands):
    return list(reversed(list(commands)))


def test_status_from_returncode_plain():
    assert status_from_returncode(0) == 0
    assert status_from_returncode(5) == 5


def test_status_from_returncode_signals():
    assert status_from_returncode(-2) == 130
    assert status_from_returncode(-13) == 0


def test_check_pipeline_lone_pipe(env):
    with pytest.raises(PipelineError) as info:
        check_pipeline(written_order(parse_command("|", env)))
    assert str(info.value) == ONLY_PIPE


def test_check_pipeline_double_pipe(env):
    with pytest.raises(PipelineError) as info:
        check_pipeline(written_order(parse_command("| |", env)))
    assert str(info.value) == ONLY_PIPES


def test_run_rejects_pipe_only(env, streams):
    out, err = streams
    status = Executor(env, out, err).run(parse_command("|", env))
    assert status == 2
    assert env.exit_status == 2
    assert err.getvalue() == ONLY_PIPE


def test_run_builtin_echo(env, streams):
    out, err = streams
    status = Executor(env, out, err).run(parse_command("echo hello world", env))
    assert status == 0
    assert out.getvalue() == "hello world\n"


def test_run_single_external(env, streams):
    out, err = streams
    sentence = Sentence(tokens=[PY, "-c", "print('hi')"])
    assert Executor(env, out, err).run_single(sentence) == 0
    assert out.getvalue() == "hi\n"


def test_run_single_exit_code(env, streams):
    out, err = streams
    sentence = Sentence(tokens=[PY, "-c", "import sys; sys.exit(3)"])
    assert Executor(env, out, err).run_single(sentence) == 3
    assert env.exit_status == 3


def test_stderr_is_captured(env, streams):
    out, err = streams
    sentence = Sentence(tokens=[PY, "-c", "import sys; sys.stderr.write('bad')"])
    Executor(env, out, err).run_single(sentence)
    assert err.getvalue() == "bad"


def test_command_not_found(tmp_path, streams):
    out, err = streams
    env = Environment()
    env.set("PATH", str(tmp_path))
    status = Executor(env, out, err).run_single(Sentence(tokens=["missing-cmd"]))
    assert status == 127
    assert err.getvalue() == command_not_found("missing-cmd")


def test_error_sentence(env, streams):
    out, err = streams
    sentence = build_sentence(["nosuch", ">"], Flag.STDOUT)
    assert Executor(env, out, err).run_single(sentence) == 127
    assert err.getvalue() == REDIRECTION_SYNTAX_ERROR


def test_exit_requests_stop(env, streams):
    out, err = streams
    executor = Executor(env, out, err)
    assert executor.run(parse_command("exit 5", env)) == 5
    assert executor.exit_requested is True
    assert out.getvalue() == "exit\n"


def test_export_single_persists(env, streams):
    out, err = streams
    Executor(env, out, err).run(parse_command("export FOO=bar", env))
    assert env.get("FOO") == "bar"


def test_export_in_pipeline_is_isolated(env, streams):
    out, err = streams
    sentences = [
        Sentence(tokens=["export", "FOO=bar"], output_flag=Flag.PIPE),
        Sentence(tokens=["echo", "done"]),
    ]
    Executor(env, out, err).run_pipeline(sentences)
    assert out.getvalue() == "done\n"
    assert "FOO" not in env


def test_pipeline_builtin_into_program(env, streams):
    out, err = streams
    sentences = [
        Sentence(tokens=["echo", "abc"], output_flag=Flag.PIPE),
        Sentence(tokens=[PY, "-c", "import sys; sys.stdout.write(sys.stdin.read().upper())"]),
    ]
    assert Executor(env, out, err).run_pipeline(sentences) == 0
    assert out.getvalue() == "ABC\n"


def test_pipeline_program_into_program(env, streams):
    out, err = streams
    sentences = [
        Sentence(tokens=[PY, "-c", "print('x')"], output_flag=Flag.PIPE),
        Sentence(tokens=[PY, "-c", "import sys; sys.stdout.write(sys.stdin.read().upper())"]),
    ]
    Executor(env, out, err).run_pipeline(sentences)
    assert out.getvalue() == "X\n"


def test_pipeline_status_is_last(env, streams):
    out, err = streams
    sentences = [
        Sentence(tokens=[PY, "-c", "import sys; sys.exit(9)"], output_flag=Flag.PIPE),
        Sentence(tokens=[PY, "-c", "import sys; sys.exit(4)"]),
    ]
    assert Executor(env, out, err).run_pipeline(sentences) == 4
    assert env.exit_status == 4


def test_output_redirection(env, streams, tmp_path):
    out, err = streams
    target = tmp_path / "out.txt"
    sentence = Sentence(
        tokens=[PY, "-c", "print('x')"],
        output_flag=Flag.REDIRECT_TRUNC,
        output_argv=str(target),
    )
    Executor(env, out, err).run_single(sentence)
    assert target.read_text() == "x\n"
    assert out.getvalue() == ""


def test_heredoc_input(env, streams):
    out, err = streams
    env.set("NAME", "alice")
    sentence = Sentence(
        tokens=[PY, "-c", "import sys; sys.stdout.write(sys.stdin.read())"],
        input_flag=Flag.HEREDOC,
        input_argv="EOF",
    )
    executor = Executor(env, out, err, reader=make_reader(["hi $NAME", "EOF"]))
    executor.run_single(sentence)
    assert out.getvalue() == "hi alice\n"


def test_missing_input_file(env, streams, tmp_path):
    out, err = streams
    sentence = Sentence(
        tokens=[PY, "-c", "pass"],
        input_flag=Flag.REDIRECT_READ,
        input_argv=str(tmp_path / "missing"),
    )
    assert Executor(env, out, err).run_single(sentence) == 1
    assert str(tmp_path / "missing") in err.getvalue()


def test_builtin_missing_input_file(env, streams, tmp_path):
    out, err = streams
    sentence = Sentence(
        tokens=["echo", "x"],
        input_flag=Flag.REDIRECT_READ,
        input_argv=str(tmp_path / "missing"),
    )
    assert Executor(env, out, err).run_single(sentence) == 1
    assert out.getvalue() == ""