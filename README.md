# talisman

Building blocks for keeping secrets out of git repositories. The package
reads what is about to leave a repository — staged changes, outgoing
commits or every blob in the history — and applies the ignore rules kept
in a `.talismanrc` file.

It drives the `git` executable, which must be on the `PATH`.

## Modules

- `talisman.gitrepo` — `GitRepo`, `Addition` and `GitCommandError`.
  `repo_located_at(path)` opens a repository at the absolute form of a
  path. `staged_additions()` returns staged files with their staged
  contents, `get_diff_for_staged_files()` returns only the added lines of
  each staged file, `all_additions()` compares against `origin/HEAD`, and
  `additions_within_range(old, new)` lists non-deleted files changed between
  two commits with their contents at `HEAD`. `tracked_files_as_additions()`
  and `check_if_file_exists(name)` complete the set. A failing git command
  raises `GitCommandError`.
  `Addition.matches(pattern)` applies the ignore pattern rules: a trailing
  `/` matches everything under that directory, a pattern with `/` elsewhere
  is a glob on the full path, and any other pattern is a glob on the file
  name. Wildcards never cross a `/`.
- `talisman.git_readers` — `BatchGitObjectReader`, a `git cat-file --batch`
  process kept open between reads. `new_batch_git_head_path_reader`,
  `new_batch_git_staged_path_reader` and `new_batch_git_object_hash_reader`
  read paths from `HEAD`, paths from the index, or objects by hash. It can
  be used as a context manager.
- `talisman.talismanrc` — loading and applying `.talismanrc`.
  `for_mode(Mode.HOOK)` / `for_mode(Mode.SCAN)` and `for_scan(ignore_history)`
  build a `TalismanRC`; file ignore entries apply only in hook mode.
  `TalismanRC.deny`, `accept`, `accepts_all`, `filter_additions` (scopes
  `node`, `go`, `images`, `bazel`, `terraform`, `php`, `python`) and
  `filter_allowed_patterns_from_addition` apply the rules.
  `PersistedRC.add_ignores` merges entries into the rc file on disk, sorted
  by file name; `suggest_rc_for` renders entries as rc file text.
  `new_persisted_rc` raises `ValueError` on invalid content; a missing rc
  file gives the defaults. `set_rc_filename` and `set_repo_file_reader`
  change where the file is read from.
- `talisman.hasher` — the collective SHA-256 checksum that rc entries are
  pinned to. `DefaultSHA256Hasher` reads files from disk (not following
  symbolic links); `GitBatchSHA256Hasher` reads through a batch git reader.
  `make_hasher(mode, root)` returns a started, cached hasher for the modes
  `pre-push`, `pre-commit`, `scan`, `pattern`, `checksum` and `default`;
  `destroy_hashers()` shuts them all down.
- `talisman.scanner` — `get_additions(ignore_history, batch_reader)` returns
  every blob of the history (or of the latest commit only) as an addition
  with the commits it appears in.
- `talisman.utility` — `safe_read_file`, `is_file_symlink`, `unique_items`,
  `copy_file` and `copy_dir`.
- `talisman.progress_bar` — `get_progress_bar(out, title)` gives a drawn bar
  on character devices and a silent one otherwise.
- `talisman.prompt` — `Prompt.confirm(message)`, a yes/no question that
  defaults to no, and `PromptContext`.
- `talisman.git_testing` — `init(root)` and `GitTesting` for building
  throwaway repositories in tests.

## Example

```python
from talisman.gitrepo import repo_located_at
from talisman.talismanrc import for_scan
from talisman.hasher import DefaultSHA256Hasher

repo = repo_located_at(".")
rc = for_scan(True)

for addition in rc.filter_additions(repo.staged_additions()):
    if rc.deny(addition, "filecontent"):
        continue
    text = rc.filter_allowed_patterns_from_addition(addition)
    print(addition.path, len(text))

print(DefaultSHA256Hasher().collective_sha256_hash(["config/settings.yml"]))
```

A `.talismanrc` entry pins a file to its checksum and may switch off
individual detectors for it:

```yaml
fileignoreconfig:
- filename: config/settings.yml
  checksum: 87139cc4d975333b25b6275f97680604add51b84eb8f4a3b9dcbbc652e6f27ac
  ignore_detectors:
  - filecontent
scopeconfig:
- scope: node
threshold: high
version: "1.0"
```

## What it does not do

The package contains no detectors: it does not itself look for secrets in
the additions it collects. It has no command-line program, installs no git
hooks, and writes no scan reports. Severity and threshold values from the
rc file are kept as plain strings and not interpreted.

## Tests

The test suite uses pytest and is installed with the `test` extra.