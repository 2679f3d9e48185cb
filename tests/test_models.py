"""Tests for monobump.models."""

from __future__ import annotations

import pydantic
import pytest

from monobump.models import DependencySpec, UpdatePlan, VersionResult


class TestUpdatePlan:
    def test_defaults(self) -> None:
        plan = UpdatePlan()
        assert plan.updates == []
        assert plan.versions == {}
        assert plan.global_version is None

    def test_frozen(self) -> None:
        plan = UpdatePlan(versions={"a": "1.0.0"})
        with pytest.raises(pydantic.ValidationError):
            plan.global_version = "2.0.0"

    def test_model_copy_leaves_original(self) -> None:
        plan = UpdatePlan(versions={"a": "1.0.0"})
        updated = plan.model_copy(update={"global_version": "1.0.0"})
        assert updated.global_version == "1.0.0"
        assert plan.global_version is None


class TestDependencySpec:
    def test_defaults_to_version(self) -> None:
        assert DependencySpec(name="a", range="a>=1").spec_type == "version"

    def test_rejects_unknown_type(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            DependencySpec(name="a", range="a", spec_type="git")


class TestVersionResult:
    def test_serializes(self) -> None:
        result = VersionResult(
            updates=["a"], updates_versions={"a": "1.0.1"}, tags=["a@1.0.1"]
        )
        assert result.model_dump() == {
            "updates": ["a"],
            "updates_versions": {"a": "1.0.1"},
            "tags": ["a@1.0.1"],
        }
