import os

import pytest

from talisman import git_testing
from talisman.gitrepo import GitCommandError


def commit_count(git):
    return int(git.exec_command("git", "rev-list", "--count", "HEAD"))


@pytest.fixture
def baseline(tmp_path):
    git = git_testing.init(str(tmp_path / "testLocation1"))
    git.setup_baseline_files("a.txt", "alice/bob/b.txt")
    return git


def test_init_sets_up_folder_and_git_structures(tmp_path):
    root = tmp_path / "dir" / "sub_dir" / "testLocation2"
    git = git_testing.init(str(root))
    assert root.is_dir()
    assert (root / ".git").exists()
    assert git.root == os.path.abspath(str(root))


def test_setting_up_baseline_files_makes_one_commit(baseline):
    assert commit_count(baseline) == 1
    assert os.path.isfile(os.path.join(baseline.root, "alice", "bob", "b.txt"))


def test_editing_files_works(baseline):
    baseline.append_file_content("a.txt", "\nmonkey see.\n", "monkey do.")
    assert baseline.file_contents("a.txt").endswith(b"monkey see.\nmonkey do.")
    baseline.add_and_commit("a.txt", "modified content")
    assert commit_count(baseline) == 2


def test_removing_files_works(baseline):
    baseline.remove_file("a.txt")
    assert not os.path.exists(os.path.join(baseline.root, "a.txt"))
    baseline.add_and_commit("a.txt", "removed it")
    assert commit_count(baseline) == 2


def test_cloning_a_repo_works(baseline, tmp_path):
    location = tmp_path / "somewhereElse" / "testLocationClone"
    clone = baseline.git_clone(str(location))
    assert commit_count(baseline) == 1
    assert commit_count(clone) == 1
    assert clone.root == str(location)
    assert clone.file_contents("a.txt") == baseline.file_contents("a.txt")


def test_earliest_commit_is_stable(tmp_path):
    git = git_testing.init(str(tmp_path / "repo"))
    git.setup_baseline_files("a.txt")
    initial = git.earliest_commit()
    git.append_file_content("a.txt", "\nmonkey see.\n", "monkey do.")
    git.add_and_commit("a.txt", "modified content")
    assert git.earliest_commit() == initial


def test_latest_commit_moves(tmp_path):
    git = git_testing.init(str(tmp_path / "repo"))
    git.setup_baseline_files("a.txt")
    git.append_file_content("a.txt", "\nmonkey see.\n", "monkey do.")
    git.add_and_commit("a.txt", "modified content")
    git.append_file_content("a.txt", "\nline n-1.\n", "line n.")
    git.add_and_commit("a.txt", "more modified content")
    assert git.latest_commit() != git.earliest_commit()
    assert git.exec_command("git", "rev-parse", "HEAD~2") == git.earliest_commit()
    assert commit_count(git) == 3


def test_create_and_overwrite_file(tmp_path):
    git = git_testing.init(str(tmp_path / "repo"))
    assert git.create_file_with_contents("x/y.txt", "one", "two") == "x/y.txt"
    assert git.file_contents("x/y.txt") == b"onetwo"
    git.overwrite_file_content("x/y.txt", "three")
    assert git.file_contents("x/y.txt") == b"three"


def test_append_to_missing_file_raises(tmp_path):
    git = git_testing.init(str(tmp_path / "repo"))
    with pytest.raises(FileNotFoundError):
        git.append_file_content("nothing.txt", "text")


def test_get_blob_details(baseline):
    details = baseline.get_blob_details("a.txt")
    blob_hash, _, name = details.partition(" ")
    assert name == "a.txt"
    assert blob_hash == baseline.exec_command("git", "rev-parse", "HEAD:a.txt")
    assert baseline.get_blob_details("unknown.txt") == ""


def test_exec_command_failure_raises(baseline):
    with pytest.raises(GitCommandError):
        baseline.exec_command("git", "rev-parse", "no-such-ref-anywhere")


def test_remove_hooks(baseline):
    baseline.remove_hooks()
    assert not os.path.exists(os.path.join(baseline.root, ".git", "hooks"))
    assert commit_count(baseline) == 1