import pytest

from talisman import git_testing
from talisman.git_readers import (
    BatchGitObjectReader,
    new_batch_git_head_path_reader,
    new_batch_git_object_hash_reader,
    new_batch_git_staged_path_reader,
)


@pytest.fixture
def repo(tmp_path):
    git = git_testing.init(str(tmp_path / "repo"))
    git.create_file_with_contents("a.txt", "committed\n")
    git.create_file_with_contents("empty.txt")
    git.create_file_with_contents("dir/no_newline.txt", "no trailing newline")
    git.add_and_commit("*", "first")
    return git


def test_head_reader_reads_committed_contents(repo):
    with new_batch_git_head_path_reader(repo.root) as reader:
        assert reader.read("a.txt") == b"committed\n"


def test_staged_reader_sees_index_while_head_reader_does_not(repo):
    repo.overwrite_file_content("a.txt", "staged\n")
    repo.add("a.txt")
    with new_batch_git_staged_path_reader(repo.root) as staged:
        assert staged.read("a.txt") == b"staged\n"
    with new_batch_git_head_path_reader(repo.root) as head:
        assert head.read("a.txt") == b"committed\n"


def test_object_hash_reader_reads_blob(repo):
    blob_hash = repo.exec_command("git", "rev-parse", "HEAD:a.txt")
    with new_batch_git_object_hash_reader(repo.root) as reader:
        assert reader.read(blob_hash) == b"committed\n"


def test_consecutive_reads_keep_framing(repo):
    with new_batch_git_head_path_reader(repo.root) as reader:
        assert reader.read("empty.txt") == b""
        assert reader.read("dir/no_newline.txt") == b"no trailing newline"
        assert reader.read("a.txt") == b"committed\n"
        assert reader.read("a.txt") == repo.file_contents("a.txt")


def test_missing_object_raises_and_reader_recovers(repo):
    with new_batch_git_head_path_reader(repo.root) as reader:
        with pytest.raises(OSError):
            reader.read("missing.txt")
        assert reader.read("a.txt") == b"committed\n"


def test_read_before_start_raises(repo):
    reader = BatchGitObjectReader(repo.root, "HEAD")
    with pytest.raises(RuntimeError):
        reader.read("a.txt")
    with pytest.raises(RuntimeError):
        reader.shutdown()


def test_start_twice_raises(repo):
    reader = new_batch_git_head_path_reader(repo.root)
    reader.start()
    try:
        with pytest.raises(RuntimeError):
            reader.start()
    finally:
        reader.shutdown()
    with pytest.raises(RuntimeError):
        reader.read("a.txt")