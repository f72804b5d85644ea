"""Search, filter and summarise the cached GitHub repository list."""

from collections import Counter
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from repo_console.dtos.github import RemoteRepository, RepositoryStatsResponse

VISIBILITY_FILTERS = ("all", "public", "private", "fork", "source")
SORT_KEYS = ("name", "stars", "updated", "created")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _matches_search(repo: RemoteRepository, needle: str) -> bool:
    haystacks = (repo.name, repo.full_name, repo.description or "")
    return any(needle in value.lower() for value in haystacks)


def _matches_visibility(repo: RemoteRepository, visibility: str) -> bool:
    if visibility == "public":
        return not repo.private
    if visibility == "private":
        return repo.private
    if visibility == "fork":
        return repo.fork
    if visibility == "source":
        return not repo.fork
    return True


def _timestamp(value: Optional[datetime]) -> datetime:
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def filter_repositories(
    repos: Iterable[RemoteRepository],
    search: Optional[str] = None,
    visibility: str = "all",
    language: Optional[str] = None,
    sort: str = "updated",
) -> List[RemoteRepository]:
    """
    Narrow and order a repository list.

    Args:
        repos: Repositories to filter
        search: Case-insensitive substring of name, full name or description
        visibility: One of ``all``, ``public``, ``private``, ``fork``, ``source``
        language: Exact primary language (case-insensitive)
        sort: ``name`` ascending, or ``stars``/``updated``/``created`` descending

    Returns:
        A new list; the input is left untouched
    """
    if visibility not in VISIBILITY_FILTERS:
        raise ValueError(f"Unknown visibility filter: {visibility}")
    if sort not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {sort}")

    needle = search.strip().lower() if search else ""
    wanted_language = language.lower() if language else None

    result = [
        repo
        for repo in repos
        if (not needle or _matches_search(repo, needle))
        and _matches_visibility(repo, visibility)
        and (
            wanted_language is None
            or (repo.language or "").lower() == wanted_language
        )
    ]

    if sort == "name":
        result.sort(key=lambda r: r.name.lower())
    elif sort == "stars":
        result.sort(key=lambda r: r.stargazers_count, reverse=True)
    elif sort == "created":
        result.sort(key=lambda r: _timestamp(r.created_at), reverse=True)
    else:
        result.sort(key=lambda r: _timestamp(r.updated_at), reverse=True)
    return result


def repository_stats(repos: Iterable[RemoteRepository]) -> RepositoryStatsResponse:
    repos = list(repos)
    languages = Counter(repo.language for repo in repos if repo.language)
    return RepositoryStatsResponse(
        total_repos=len(repos),
        total_stars=sum(repo.stargazers_count for repo in repos),
        total_forks=sum(repo.forks_count for repo in repos),
        languages=dict(languages.most_common()),
    )
