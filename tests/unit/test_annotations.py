"""Unit tests for late-bound task annotations."""

from __future__ import annotations

import pytest

from meadow_deploy.orchestrator.tasks.annotations import (
    AnnotationStore,
    MissingAnnotationError,
    PackageNameAnnotation,
    PublishTargetAnnotation,
)


def test_latest_annotation_of_a_kind_wins() -> None:
    store = AnnotationStore(owner="meadow-cli-package-create")
    store.attach(PackageNameAnnotation(name="first"))
    store.attach(PublishTargetAnnotation(package_id="p1", collection_id="c1"))
    store.attach(PackageNameAnnotation(name="second"))

    assert store.require(PackageNameAnnotation).name == "second"
    assert [a.name for a in store.history(PackageNameAnnotation)] == ["first", "second"]
    assert store.latest(PublishTargetAnnotation) == PublishTargetAnnotation("p1", "c1")
    assert len(store) == 3


def test_require_names_the_missing_kind_and_task() -> None:
    store = AnnotationStore(owner="meadow-cli-package-publish")

    assert store.latest(PublishTargetAnnotation) is None
    with pytest.raises(MissingAnnotationError) as excinfo:
        store.require(PublishTargetAnnotation)

    assert excinfo.value.kind is PublishTargetAnnotation
    assert "PublishTargetAnnotation" in str(excinfo.value)
    assert "meadow-cli-package-publish" in str(excinfo.value)
