"""Payload builders shaped like GitHub REST responses."""

from typing import Any, Dict


def make_repo(repo_id: int, name: str, owner: str = "alice", **overrides) -> Dict[str, Any]:
    data = {
        "id": repo_id,
        "name": name,
        "full_name": f"{owner}/{name}",
        "owner": {"login": owner, "avatar_url": f"https://avatars.example/{owner}"},
        "private": False,
        "fork": False,
        "html_url": f"https://github.com/{owner}/{name}",
        "description": None,
        "language": "Python",
        "stargazers_count": 0,
        "forks_count": 0,
        "updated_at": "2024-01-01T00:00:00Z",
        "created_at": "2023-01-01T00:00:00Z",
    }
    data.update(overrides)
    return data
