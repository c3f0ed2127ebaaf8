"""Wire services for one workspace from its configuration."""

from __future__ import annotations

from dataclasses import dataclass

from src.config import WorkspaceConfig
from src.history.analyzer import HistoryAnalyzer
from src.history.git import GitHistory
from src.sprints.repository import SprintRepository
from src.sprints.workspace import WorkspacePaths, resolve_paths
from src.stories.parser import MarkdownStoryParser
from src.workflow.interface import VersionControl

from .burndown import SprintBurndownService
from .close import SprintCloseService
from .doctor import SprintDoctorService
from .plan import SprintPlanService
from .start import SprintStartService
from .status import SprintStatusService


@dataclass
class Services:
    config: WorkspaceConfig
    paths: WorkspacePaths
    repository: SprintRepository
    status: SprintStatusService
    doctor: SprintDoctorService
    burndown: SprintBurndownService
    plan: SprintPlanService
    start: SprintStartService
    close: SprintCloseService


def build_services(config: WorkspaceConfig, vcs: VersionControl | None = None) -> Services:
    """Build every service for ``config.repo_path``.

    ``vcs`` defaults to the git repository at the workspace root.
    """
    paths = resolve_paths(config.repo_path)
    repository = SprintRepository(paths.sprints_dir)
    parser = MarkdownStoryParser()
    vcs = vcs or GitHistory(paths.repo_path, include_merges=config.include_merge_commits)

    status = SprintStatusService(repository, default_duration=config.default_duration)
    return Services(
        config=config,
        paths=paths,
        repository=repository,
        status=status,
        doctor=SprintDoctorService(repository),
        burndown=SprintBurndownService(
            repository,
            HistoryAnalyzer(vcs, parser, tz=config.tzinfo),
            paths.repo_path,
            parser=parser,
        ),
        plan=SprintPlanService(repository, sprint_stem=config.sprint_stem),
        start=SprintStartService(
            repository,
            status,
            default_duration=config.default_duration,
            sprint_stem=config.sprint_stem,
        ),
        close=SprintCloseService(repository, status, parser=parser),
    )
