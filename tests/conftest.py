"""Pytest fixtures for git-site-publisher tests"""
import tempfile
from pathlib import Path

import git
import pytest

from git_site_publisher.config import Config
from git_site_publisher.services.git.gateway import GitGateway


def configure_user(repo):
    """Give a repository a committer identity and disable signing."""
    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Test User")
        writer.set_value("user", "email", "test@example.com")
        writer.set_value("commit", "gpgsign", "false")


def write_files(root: Path, files: dict) -> None:
    """Create files under root from a {relative path: content} mapping."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


def read_tree(root: Path) -> dict:
    """Map every file under root (outside .git) to its content."""
    return {
        path.relative_to(root).as_posix(): path.read_text()
        for path in sorted(root.rglob("*"))
        if path.is_file() and ".git" not in path.relative_to(root).parts
    }


def remote_files(remote_repo, branch: str) -> list:
    """Paths of the files in the tip commit of a remote branch."""
    tree = remote_repo.commit(branch).tree
    return sorted(item.path for item in tree.traverse() if item.type == "blob")


def remote_history(remote_repo, branch: str) -> list:
    """Commits of a remote branch, newest first."""
    return list(remote_repo.iter_commits(branch))


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def remote_repo(temp_dir):
    """Bare repository standing in for the hosting remote."""
    repo = git.Repo.init(temp_dir / "remote.git", bare=True)
    yield repo
    repo.close()


@pytest.fixture
def git_repo(temp_dir, remote_repo):
    """Source repository with one commit on main, pushed to origin."""
    repo_path = temp_dir / "site"
    repo_path.mkdir()

    repo = git.Repo.init(repo_path)
    configure_user(repo)

    (repo_path / "README.md").write_text("# Test Site\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")
    repo.git.branch("-M", "main")

    repo.create_remote("origin", str(temp_dir / "remote.git"))
    repo.git.push("origin", "main")

    yield repo

    repo.close()


@pytest.fixture
def site_output(git_repo):
    """Build output directory inside the source repository."""
    output = Path(git_repo.working_dir) / "public"
    write_files(output, {
        "index.html": "<h1>Home</h1>\n",
        "css/site.css": "body { margin: 0; }\n",
    })
    return output


@pytest.fixture
def config(git_repo, site_output):
    """Publish configuration for the test repository."""
    return Config(
        repo_path=git_repo.working_dir,
        output_dir="public",
        branch="gh-pages",
        network_timeout=60,
    )


@pytest.fixture
def gateway(git_repo):
    """GitPython gateway over the test repository."""
    return GitGateway(git_repo.working_dir, network_timeout=60)


@pytest.fixture
def other_clone(temp_dir, remote_repo):
    """Factory for a second clone that publishes to the remote on its own."""
    clones = []

    def push_to_branch(branch: str, files: dict, message: str = "external publish") -> str:
        path = temp_dir / f"clone-{len(clones)}"
        repo = git.Repo.clone_from(str(temp_dir / "remote.git"), path)
        clones.append(repo)
        configure_user(repo)
        if f"origin/{branch}" in [ref.name for ref in repo.remote("origin").refs]:
            repo.git.checkout("-B", branch, f"origin/{branch}")
        else:
            repo.git.switch("--orphan", branch)
        write_files(path, files)
        repo.git.add("--all", ".")
        repo.git.commit("-m", message)
        repo.git.push("origin", f"HEAD:refs/heads/{branch}")
        return repo.head.commit.hexsha

    yield push_to_branch

    for repo in clones:
        repo.close()
