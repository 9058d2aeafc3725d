"""Tests for narrative composition."""

import pytest

from narrative_engine.config import Settings
from narrative_engine.narrative.exceptions import (
    CircularReferenceError,
    CompositionDepthError,
    UndefinedReferenceError,
)
from narrative_engine.narrative.models import ActConfig
from tests.factories import MockDriver, create_multi, create_narrative


def chain_of(length: int):
    """n0 -> n1 -> ... -> n{length-1}, the last one a plain act."""
    narratives = {
        f"n{i}": {"call": ActConfig.reference(f"n{i + 1}")} for i in range(length - 1)
    }
    narratives[f"n{length - 1}"] = {"leaf": "Leaf."}
    return create_multi(narratives, active="n0")


class TestNestedExecution:
    """Tests for running a referenced narrative."""

    @pytest.mark.asyncio
    async def test_child_result_flows_into_parent(self, make_executor):
        """Only the child's final response reaches the parent's context."""
        driver = MockDriver(["child-1", "child-2", "parent-final"])
        source = create_multi(
            {
                "main": {"research": ActConfig.reference("research"), "write": "Write it up."},
                "research": {"gather": "Gather.", "condense": "Condense."},
            },
            active="main",
        )

        execution = await make_executor(driver).execute(source)

        assert execution.responses == ["child-2", "parent-final"]
        nested = execution.act_executions[0]
        assert nested.is_composition
        assert nested.model is None
        assert nested.composed.narrative_name == "research"
        assert nested.composed.responses == ["child-1", "child-2"]

        # Child runs in a fresh context
        assert len(driver.requests[0].messages) == 1
        parent_request = driver.requests[2].messages
        assert [m.text for m in parent_request] == [
            "[Nested narrative: research]",
            "child-2",
            "Write it up.",
        ]

    @pytest.mark.asyncio
    async def test_shared_act_is_identical_everywhere(self, make_executor):
        """A shared act behaves the same inside every narrative."""
        critique = ActConfig.text("Critique it.", model="critic", temperature=0.2)
        driver = MockDriver()
        source = create_multi(
            {"topicA": {"writeA": "Write A."}, "topicB": {"writeB": "Write B."}},
            shared_acts={"critique": critique},
            tocs={"topicA": ["writeA", "critique"], "topicB": ["writeB", "critique"]},
        )
        executor = make_executor(driver)

        await executor.execute(source.focus("topicA"))
        await executor.execute(source.focus("topicB"))

        critique_requests = [r for r in driver.requests if r.model == "critic"]
        assert len(critique_requests) == 2
        assert {r.temperature for r in critique_requests} == {0.2}
        assert {r.messages[-1].text for r in critique_requests} == {"Critique it."}

    @pytest.mark.asyncio
    async def test_diamond_is_not_a_cycle(self, make_executor):
        """Visiting the same narrative on two separate branches is fine."""
        driver = MockDriver()
        source = create_multi(
            {
                "top": {"left": ActConfig.reference("left"), "right": ActConfig.reference("right")},
                "left": {"go": ActConfig.reference("base")},
                "right": {"go": ActConfig.reference("base")},
                "base": {"work": "Work."},
            },
            active="top",
        )

        execution = await make_executor(driver).execute(source)

        assert len(execution) == 2
        assert driver.call_count == 2

    @pytest.mark.asyncio
    async def test_long_chain(self, make_executor):
        driver = MockDriver(["deep"])
        executor = make_executor(
            driver, settings=Settings(_env_file=None, max_composition_depth=100)
        )

        execution = await executor.execute(chain_of(60))

        assert execution.final_response() == "deep"
        assert driver.call_count == 1


class TestCompositionErrors:
    """Tests for errors found before any model call."""

    @pytest.mark.asyncio
    async def test_undefined_reference(self, make_executor):
        driver = MockDriver()
        source = create_multi(
            {"main": {"first": "Hi.", "call": ActConfig.reference("ghost")}}, active="main"
        )

        with pytest.raises(UndefinedReferenceError) as exc_info:
            await make_executor(driver).execute(source)

        assert exc_info.value.reference == "ghost"
        assert exc_info.value.act_name == "call"
        assert exc_info.value.sequence_number == 1
        assert driver.call_count == 0

    @pytest.mark.asyncio
    async def test_single_narrative_cannot_compose(self, make_executor):
        """A standalone narrative has no siblings to resolve."""
        driver = MockDriver()
        narrative = create_narrative(acts={"call": ActConfig.reference("other")})

        with pytest.raises(UndefinedReferenceError):
            await make_executor(driver).execute(narrative)
        assert driver.call_count == 0

    @pytest.mark.asyncio
    async def test_mutual_cycle(self, make_executor):
        """A -> B -> A is reported with the full chain and no calls."""
        driver = MockDriver()
        source = create_multi(
            {
                "A": {"prep": "Prep.", "toB": ActConfig.reference("B")},
                "B": {"toA": ActConfig.reference("A")},
            },
            active="A",
        )

        with pytest.raises(CircularReferenceError) as exc_info:
            await make_executor(driver).execute(source)

        assert exc_info.value.chain == ("A", "B", "A")
        assert "A -> B -> A" in str(exc_info.value)
        assert driver.call_count == 0

    @pytest.mark.asyncio
    async def test_self_reference(self, make_executor):
        driver = MockDriver()
        source = create_multi({"loop": {"again": ActConfig.reference("loop")}})

        with pytest.raises(CircularReferenceError) as exc_info:
            await make_executor(driver).execute(source)
        assert exc_info.value.chain == ("loop", "loop")

    @pytest.mark.asyncio
    async def test_depth_limit(self, make_executor):
        """Nesting beyond max_composition_depth is rejected up front."""
        settings = Settings(_env_file=None, max_composition_depth=2)
        driver = MockDriver()

        ok = await make_executor(driver, settings=settings).execute(chain_of(3))
        assert ok.final_response() == "OK"

        with pytest.raises(CompositionDepthError) as exc_info:
            await make_executor(driver, settings=settings).execute(chain_of(4))
        assert exc_info.value.limit == 2
        assert driver.call_count == 1

    def test_check_is_static(self, make_executor):
        """check() finds cycles without running anything."""
        driver = MockDriver()
        source = create_multi(
            {
                "A": {"toB": ActConfig.reference("B")},
                "B": {"toC": ActConfig.reference("C")},
                "C": {"toA": ActConfig.reference("A")},
            },
            active="A",
        )

        with pytest.raises(CircularReferenceError) as exc_info:
            make_executor(driver).composition.check(source)
        assert exc_info.value.chain == ("A", "B", "C", "A")
