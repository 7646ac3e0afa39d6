"""Tests for name disambiguation."""

import pytest
from conftest import component
from kitn_components import AmbiguousComponentError
from kitn_components import ComponentType
from kitn_components import disambiguate
from kitn_components.prompts import NonInteractivePrompter
from kitn_components.refs import ComponentRef


@pytest.mark.asyncio
async def test_exact_match_selected_silently(registry, prompter):
    """Test a unique exact name needs no prompt."""
    registry.add(component("weather-tool"))
    registry.add(component("weather-tool-pro"))

    async with registry.fetcher() as fetcher:
        result = await disambiguate(["weather-tool"], fetcher, prompter)

    assert result.refs == [ComponentRef("@kitn", "weather-tool")]
    assert result.type_hints == {"weather-tool": ComponentType.TOOL}
    assert prompter.choices == []


@pytest.mark.asyncio
async def test_same_name_different_types_prompts(registry, prompter):
    """Test two types sharing a name go to the prompter."""
    registry.add(component("memory", "storage"))
    registry.add(component("memory", "tool"))
    prompter.choice = 1

    async with registry.fetcher() as fetcher:
        result = await disambiguate(["memory"], fetcher, prompter)

    assert len(prompter.choices[0]) == 2
    assert result.type_hints["memory"] == ComponentType.TOOL


@pytest.mark.asyncio
async def test_type_filter_removes_ambiguity(registry, prompter):
    """Test --type narrows candidates to one."""
    registry.add(component("memory", "storage"))
    registry.add(component("memory", "tool"))

    async with registry.fetcher() as fetcher:
        result = await disambiguate(["memory"], fetcher, prompter, ComponentType.STORAGE)

    assert result.type_hints["memory"] == ComponentType.STORAGE
    assert prompter.choices == []


@pytest.mark.asyncio
async def test_substring_match_across_namespaces(registry, prompter):
    """Test a partial name searches every registry."""
    registry.add(component("weather-tool"))
    registry.add(component("weather-agent", "agent"), namespace="@acme")

    async with registry.fetcher() as fetcher:
        result = await disambiguate(["weather"], fetcher, prompter)

    labels = [candidate.label() for candidate in prompter.choices[0]]
    assert labels == ["weather-tool (tool)", "@acme/weather-agent (agent)"]
    assert result.refs == [ComponentRef("@kitn", "weather-tool")]


@pytest.mark.asyncio
async def test_single_substring_match_rewrites_name(registry, prompter):
    """Test one fuzzy candidate is selected without prompting."""
    registry.add(component("weather-tool"), namespace="@acme")

    async with registry.fetcher() as fetcher:
        result = await disambiguate(["@acme/weather"], fetcher, prompter)

    assert result.refs == [ComponentRef("@acme", "weather-tool")]
    assert result.type_hints == {"@acme/weather-tool": ComponentType.TOOL}


@pytest.mark.asyncio
async def test_no_candidates_keeps_reference(registry, prompter):
    """Test unmatched names pass through for the resolver to report."""
    async with registry.fetcher() as fetcher:
        result = await disambiguate(["ghost@1.0.0"], fetcher, prompter)

    assert result.refs == [ComponentRef("@kitn", "ghost", "1.0.0")]
    assert result.type_hints == {}


@pytest.mark.asyncio
async def test_unreachable_registry_skipped(registry, prompter):
    """Test a down registry does not block matches elsewhere."""
    registry.add(component("weather-tool"))
    registry.unavailable.add("@acme")

    async with registry.fetcher() as fetcher:
        result = await disambiguate(["weather"], fetcher, prompter)

    assert result.refs == [ComponentRef("@kitn", "weather-tool")]


@pytest.mark.asyncio
async def test_non_interactive_ambiguity_raises(registry):
    """Test the non-interactive prompter lists candidates."""
    registry.add(component("memory", "storage"))
    registry.add(component("memory", "tool"))

    async with registry.fetcher() as fetcher:
        with pytest.raises(AmbiguousComponentError) as exc_info:
            await disambiguate(["memory"], fetcher, NonInteractivePrompter())

    assert exc_info.value.candidates == ["memory (storage)", "memory (tool)"]
