"""Tests for narrative TOML validation."""

from narrative_engine.narrative.validator import (
    ValidationErrorKind,
    ValidationWarningKind,
    validate_narrative_file,
    validate_narrative_toml,
)

VALID = """
[acts]
critique = "Critique the text above."

[narratives.topicA]
toc = ["write", "critique"]
[narratives.topicA.acts]
write = "Write about A."

[narratives.batch]
toc = ["run"]
[narratives.batch.acts.run]
narrative = "topicA"
"""


class TestValidFiles:
    """Tests for files that should pass."""

    def test_valid_multi(self):
        """A well-formed file has no errors or warnings."""
        result = validate_narrative_toml(VALID)
        assert result.is_valid
        assert result.warnings == []

    def test_valid_single(self):
        """The single-narrative shape validates too."""
        result = validate_narrative_toml(
            '[narrative]\nname = "n"\n[toc]\norder = ["a"]\n[acts]\na = "Say hi."'
        )
        assert result.is_valid


class TestErrors:
    """Tests for each error kind."""

    def test_syntax_error(self):
        """Syntax errors stop validation with a suggestion."""
        result = validate_narrative_toml("[narrative\n")
        assert result.has_error(ValidationErrorKind.INVALID_SYNTAX)
        assert result.errors[0].suggestion

    def test_missing_section(self):
        """Files without a narrative section are rejected."""
        result = validate_narrative_toml('[acts]\na = "x"')
        assert result.has_error(ValidationErrorKind.MISSING_SECTION)

    def test_acts_array(self):
        """[[acts]] is reported with a fix."""
        result = validate_narrative_toml(
            '[narrative]\nname = "n"\n[toc]\norder = ["a"]\n[[acts]]\nprompt = "x"'
        )
        assert result.has_error(ValidationErrorKind.ACTS_ARRAY)
        assert "[acts.act_name]" in result.errors[0].suggestion

    def test_empty_toc(self):
        """Empty tables of contents are errors."""
        result = validate_narrative_toml('[narrative]\nname = "n"\n[toc]\norder = []')
        assert result.has_error(ValidationErrorKind.EMPTY_TOC)

    def test_missing_act_suggests_close_match(self):
        """Typos in the toc get a did-you-mean suggestion."""
        result = validate_narrative_toml(
            '[narrative]\nname = "n"\n[toc]\norder = ["critque"]\n[acts]\ncritique = "x"'
        )
        error = next(e for e in result.errors if e.kind == ValidationErrorKind.MISSING_ACT)
        assert error.suggestion == "Did you mean 'critique'?"

    def test_ambiguous_act(self):
        """Local and shared definitions of one name collide."""
        text = VALID.replace('write = "Write about A."', 'write = "W"\ncritique = "local"')
        result = validate_narrative_toml(text)
        assert result.has_error(ValidationErrorKind.AMBIGUOUS_ACT)

    def test_conflicting_act(self):
        """narrative and input in one act are an error."""
        text = VALID + '\n[[narratives.batch.acts.run.input]]\ntype = "text"\ncontent = "x"\n'
        result = validate_narrative_toml(text)
        assert result.has_error(ValidationErrorKind.CONFLICTING_ACT)

    def test_undefined_reference(self):
        """References to unknown narratives are errors."""
        result = validate_narrative_toml(VALID.replace('narrative = "topicA"', 'narrative = "topicX"'))
        assert result.has_error(ValidationErrorKind.UNDEFINED_REFERENCE)

    def test_reference_in_single_narrative(self):
        """A single-narrative file has nothing to reference."""
        result = validate_narrative_toml(
            '[narrative]\nname = "n"\n[toc]\norder = ["a"]\n[acts.a]\nnarrative = "other"'
        )
        assert result.has_error(ValidationErrorKind.UNDEFINED_REFERENCE)

    def test_invalid_act(self):
        """Schema problems inside an act are reported per act."""
        result = validate_narrative_toml(
            '[narrative]\nname = "n"\n[toc]\norder = ["a"]\n[acts.a]\ntemperature = 0.5'
        )
        assert result.has_error(ValidationErrorKind.INVALID_ACT)

    def test_collects_every_error(self):
        """Validation keeps going after the first problem."""
        text = """
[narratives.one]
toc = []
[narratives.two]
toc = ["missing"]
"""
        result = validate_narrative_toml(text)
        assert result.has_error(ValidationErrorKind.EMPTY_TOC)
        assert result.has_error(ValidationErrorKind.MISSING_ACT)
        assert "Error 2:" in result.format_errors()

    def test_missing_file(self, tmp_path):
        """Unreadable files are reported, not raised."""
        result = validate_narrative_file(tmp_path / "nope.toml")
        assert result.has_error(ValidationErrorKind.FILE_NOT_FOUND)


class TestCycles:
    """Tests for static cycle detection."""

    def test_two_narrative_cycle(self):
        """A references B references A."""
        text = """
[narratives.A]
toc = ["to_b"]
[narratives.A.acts.to_b]
narrative = "B"

[narratives.B]
toc = ["to_a"]
[narratives.B.acts.to_a]
narrative = "A"
"""
        result = validate_narrative_toml(text)
        cycles = [e for e in result.errors if e.kind == ValidationErrorKind.CIRCULAR_DEPENDENCY]
        assert len(cycles) == 1
        assert "A -> B -> A" in cycles[0].message

    def test_self_reference(self):
        """A narrative referencing itself is a cycle."""
        text = '[narratives.A]\ntoc = ["again"]\n[narratives.A.acts.again]\nnarrative = "A"'
        result = validate_narrative_toml(text)
        assert result.has_error(ValidationErrorKind.CIRCULAR_DEPENDENCY)

    def test_diamond_is_not_a_cycle(self):
        """Two paths to the same narrative are fine."""
        text = """
[narratives.top]
toc = ["l", "r"]
[narratives.top.acts.l]
narrative = "left"
[narratives.top.acts.r]
narrative = "right"

[narratives.left]
toc = ["s"]
[narratives.left.acts.s]
narrative = "shared"

[narratives.right]
toc = ["s"]
[narratives.right.acts.s]
narrative = "shared"

[narratives.shared]
toc = ["go"]
[narratives.shared.acts]
go = "Do it."
"""
        assert validate_narrative_toml(text).is_valid


class TestWarnings:
    """Tests for warnings."""

    def test_unused_shared_act(self):
        """Shared acts nobody uses produce a warning."""
        text = VALID.replace('critique = "Critique the text above."', 'critique = "C"\nspare = "S"')
        result = validate_narrative_toml(text)
        assert result.is_valid
        assert [w.kind for w in result.warnings] == [ValidationWarningKind.UNUSED_RESOURCE]
        assert "'spare'" in result.warnings[0].message
        assert "Warning 1:" in result.format_warnings()
