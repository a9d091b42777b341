"""Tests for the cd working-directory guard."""

from pathlib import Path

import pytest

from shellgate.utils.permissions.models import AllowDecision, AskDecision, ReasonKind
from shellgate.utils.permissions.path_validation_utils import (
    is_cd_segment,
    is_no_op_cd,
    is_path_allowed,
    validate_cd_command,
)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    (root / "subdir" / "deeper").mkdir(parents=True)
    (tmp_path / "outside").mkdir()
    return root


def test_cd_into_child_is_allowed(project):
    decision = validate_cd_command("cd ./subdir", str(project), {str(project)})
    assert isinstance(decision, AllowDecision)
    assert decision.reason.kind == ReasonKind.WORKING_DIRECTORY


def test_cd_with_quotes_and_nested_path(project):
    decision = validate_cd_command("cd 'subdir/deeper'", str(project), {str(project)})
    assert isinstance(decision, AllowDecision)


def test_cd_outside_is_blocked(project):
    decision = validate_cd_command("cd ../../etc", str(project), {str(project)})
    assert isinstance(decision, AskDecision)
    assert decision.reason.kind == ReasonKind.DIRECTORY_BLOCKED
    assert "was blocked" in decision.message
    assert str(project) in decision.message
    assert decision.rule_suggestions is None


def test_cd_to_sibling_with_common_prefix_is_blocked(project, tmp_path):
    sibling = tmp_path / "project-other"
    sibling.mkdir()
    decision = validate_cd_command(f"cd {sibling}", str(project), {str(project)})
    assert isinstance(decision, AskDecision)


def test_cd_into_additional_directory(project, tmp_path):
    outside = tmp_path / "outside"
    decision = validate_cd_command(
        f"cd {outside}", str(project), {str(project), str(outside)}
    )
    assert isinstance(decision, AllowDecision)


def test_cd_home(project, monkeypatch):
    monkeypatch.setenv("HOME", str(project))
    assert isinstance(
        validate_cd_command("cd ~/subdir", str(project), {str(project)}), AllowDecision
    )
    assert isinstance(validate_cd_command("cd", str(project), {str(project)}), AllowDecision)


def test_cd_dash_is_never_vouched_for(project):
    decision = validate_cd_command("cd -", str(project), {str(project)})
    assert isinstance(decision, AskDecision)


def test_non_cd_segments_are_ignored(project):
    assert validate_cd_command("ls subdir", str(project), {str(project)}) is None
    assert validate_cd_command("cdrecord dev", str(project), {str(project)}) is None


def test_empty_allowed_set_falls_back_to_cwd(project):
    assert isinstance(validate_cd_command("cd subdir", str(project), set()), AllowDecision)


def test_is_no_op_cd(project):
    assert is_no_op_cd(f"cd {project}", str(project))
    assert is_no_op_cd("cd .", str(project))
    assert not is_no_op_cd("cd subdir", str(project))
    assert not is_no_op_cd("ls", str(project))


def test_is_cd_segment():
    assert is_cd_segment("cd")
    assert is_cd_segment(" cd src ")
    assert not is_cd_segment("cdrecord")


def test_is_path_allowed(project):
    assert is_path_allowed(project / "subdir", [str(project)])
    assert is_path_allowed(project, [str(project)])
    assert not is_path_allowed(project.parent, [str(project)])


@pytest.mark.parametrize(
    "segment",
    ["cd ~root", "cd ~root/.ssh", "cd ~-", "cd ~-/subdir", "cd ~+1", "cd ~no_such_user_xyz"],
)
def test_tilde_forms_outside_or_unknown_are_blocked(project, segment):
    decision = validate_cd_command(segment, str(project), {str(project)})
    assert isinstance(decision, AskDecision)
    assert decision.reason.kind == ReasonKind.DIRECTORY_BLOCKED


def test_tilde_plus_is_the_current_directory(project):
    assert isinstance(
        validate_cd_command("cd ~+/subdir", str(project), {str(project)}), AllowDecision
    )
    assert is_no_op_cd("cd ~+", str(project))


@pytest.mark.parametrize("segment", ["cd -P ../../etc", "cd -x subdir", "cd subdir deeper"])
def test_options_and_extra_operands(project, segment):
    decision = validate_cd_command(segment, str(project), {str(project)})
    assert isinstance(decision, AskDecision)


def test_supported_options_are_skipped(project):
    assert isinstance(
        validate_cd_command("cd -P -- subdir", str(project), {str(project)}), AllowDecision
    )


def test_cd_tilde_minus_is_not_a_no_op(project):
    assert not is_no_op_cd("cd ~-", str(project))
