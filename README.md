# mishell

A small interactive shell. It reads a command line, expands variables,
splits it into pipeline stages and runs them, either as built-in commands
or as programs found on `PATH`.

## Features

- Pipelines: `ls -l | grep py | wc -l`
- Redirections: `<`, `>`, `>>` and heredocs with `<<`
- Variable expansion: `$NAME`, `$?` for the last exit status, `~` for `HOME`
- Single and double quotes; `$` and `~` are not expanded inside single quotes
- Line continuation with a trailing backslash
- Built-in commands: `cd`, `echo` (with `-n`), `pwd`, `env`, `export`,
  `unset` and `exit`

## Installing

```
pip install .
```

## Running

Start the shell:

```
mishell
```

Start it in debug mode, which prints the parsed words and pipeline stages
before each command runs:

```
mishell --debug
```

`-d` is a short form of `--debug`. Any other argument is rejected with a
message and the program ends.

Leave the shell with `exit`, `exit N`, or end of input (Ctrl-D). The exit
status of the shell is the status of the last command. Ctrl-C at the prompt
gives a fresh prompt and sets `$?` to 130.

## Example session

```
미쉘> export GREETING=hello
미쉘> echo $GREETING world | tr a-z A-Z
HELLO WORLD
미쉘> cat << END
heredoc> home is $HOME
heredoc> END
home is /home/user
미쉘> echo $?
0
미쉘> exit
exit
```

## Behaviour worth knowing

- A variable name after `$` is a run of ASCII letters and digits, and it is
  looked up as the first variable whose name starts with it. A `$` followed
  by anything else than a name, `?`, a double quote or the end of the line
  is dropped.
- `~` is replaced by `HOME` wherever it appears outside single quotes.
- Inside a heredoc, `$NAME` runs up to the next whitespace; unset names
  expand to nothing.
- `export KEY=` stores a single space as the value; `export _=...` is
  accepted but nothing is stored.
- A built-in run on its own changes the shell itself; a built-in inside a
  pipeline works on a copy of the environment, so `cd` or `export` there has
  no lasting effect.
- Exit statuses: 127 when a command cannot be found, 2 for a line made only
  of pipes, 1 when a redirection target cannot be opened, 128 plus the signal
  number for a program killed by a signal (a broken pipe counts as 0).

## Using it from Python

```python
from mishell.environment import Environment
from mishell.shell import Shell

env = Environment.from_envp(["HOME=/tmp", "PATH=/usr/bin:/bin"])
shell = Shell(env)
shell.run_line("export NAME=world")
shell.run_line("echo hello $NAME")   # prints "hello world"
print(env.exit_status)               # 0
```

`Shell(env, debug=False, reader=None, out=None, err=None)` takes a `reader`
called with the prompt that returns a line or `None` at end of input, and
text streams for output and errors. `Shell.run_line` returns `True` once
`exit` has run. Lower down, `mishell.parser.parse_command` turns a line into
a `CommandDeque` of `Sentence` objects and `mishell.executor.Executor` runs
it.

## What it does not do

There is no `;`, `&&`, `||`, background jobs, job control, subshells,
globbing or script files: each line is one pipeline read from the prompt.
Only one input and one output redirection per command take effect (the last
of each). Line editing and in-session history come from Python's `readline`
module when it is available; nothing is saved between sessions.

## Running the tests

```
pip install .[test]
pytest
```