from mishell.sentence import (
    Flag,
    Sentence,
    describe_sentences,
    find_sentence,
    update_sentence,
)


def test_new_sentence_defaults_to_standard_streams():
    s = Sentence("ls")
    assert s.input_flag == Flag.STDIN
    assert s.output_flag == Flag.STDOUT
    assert s.tokens_len == 0
    assert s.input_argv is None and s.output_argv is None


def test_default_flags_match_descriptors():
    s = Sentence("ls")
    assert (int(s.input_flag), int(s.output_flag)) == (0, 1)
    assert "input: 0, (null)\n" in s.describe()
    assert "output: 1, (null)\n" in s.describe()


def test_each_flag_describes_differently():
    descriptions = {Sentence("x", output_flag=f).describe() for f in Flag}
    assert len(descriptions) == len(list(Flag))


def test_tokens_len_follows_tokens():
    s = Sentence("echo a b", ["echo", "a", "b"])
    assert s.tokens_len == 3
    s.tokens.append("c")
    assert s.tokens_len == 4


def test_describe_format():
    s = Sentence("echo hi", ["echo", "hi"])
    assert s.describe() == (
        "p_unit: [echo hi]\n"
        "input: 0, (null)\n"
        "output: 1, (null)\n"
        "[0: echo] [1: hi] \n"
    )


def test_describe_shows_redirection_target():
    s = Sentence("cat < in", ["cat"], input_flag=Flag.REDIRECT_READ, input_argv="in")
    assert f"input: {int(Flag.REDIRECT_READ)}, in\n" in s.describe()


def test_find_sentence_matches_prefix_in_any_token():
    first = Sentence("ls -l", ["ls", "-l"])
    second = Sentence("grep foo", ["grep", "foo"])
    assert find_sentence([first, second], "fo") is second
    assert find_sentence([first, second], "ls") is first


def test_find_sentence_no_match():
    assert find_sentence([Sentence("ls", ["ls"])], "cat") is None
    assert find_sentence([], "ls") is None


def test_update_sentence_replaces_command_word():
    first = Sentence("ls -l", ["ls", "-l"])
    second = Sentence("grep foo", ["grep", "foo"])
    result = update_sentence([first, second], "grep", "egrep")
    assert result is second
    assert second.tokens == ["egrep", "foo"]
    assert first.tokens == ["ls", "-l"]


def test_update_sentence_without_match_changes_nothing():
    s = Sentence("ls", ["ls"])
    assert update_sentence([s], "cat", "dog") is None
    assert s.tokens == ["ls"]


def test_describe_sentences_empty():
    assert describe_sentences([]).endswith("sentence is empty\n")


def test_describe_sentences_contains_each_in_order():
    a = Sentence("ls", ["ls"])
    b = Sentence("wc", ["wc"])
    text = describe_sentences([a, b])
    assert a.describe() in text and b.describe() in text
    assert text.index(a.describe()) < text.index(b.describe())
    assert "sentence is empty" not in text