"""
ksef/services/ranking_service.py
Competition points and the hierarchical ranking report.

Points: within each category at the chosen level, Completed projects are
ranked by final score with standard competition ranking (1, 2, 2, 4). A
project earns M - rank + 1 points, M being the number of ranked projects in
its category. Points are credited to the school and rolled up
school -> zone -> sub-county -> county -> region.
"""
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ksef.orm.project import Project, ProjectLevel, ProjectStatus
from ksef.rbac import ActorContext
from ksef.reference.geography import (
    all_regions, all_counties, all_sub_counties,
    counties_in_region, sub_counties_in_region, sub_counties_in_county,
)
from ksef.reference.schools import SCHOOL_MAPPINGS, get_school_mapping
from ksef.schemas.ranking import HierarchicalRankings, RankedItem
from ksef.services.scoring_service import load_scores_for_projects

logger = logging.getLogger(__name__)


class ScoredProject(NamedTuple):
    project: Project
    score: float
    rank: int
    points: float


class ProjectLocation(NamedTuple):
    school: str
    zone: Optional[str]
    sub_county: str
    county: str
    region: str


class RankingService:
    """
    Computes competition points and ranks every tier of the geography.
    Ranking is pure over project snapshots and final scores;
    build_ranking_report loads both from the database.
    """

    @staticmethod
    def competition_ranks(values: Sequence[float]) -> List[int]:
        """Standard competition ranks for values already sorted descending."""
        ranks = []
        for index, value in enumerate(values):
            if index > 0 and value == values[index - 1]:
                ranks.append(ranks[-1])
            else:
                ranks.append(index + 1)
        return ranks

    @staticmethod
    def calculate_project_points(
        projects: Iterable[Project],
        final_scores: Mapping[int, float],
        level_filter: Optional[ProjectLevel] = None,
    ) -> List[ScoredProject]:
        """Points for every Completed, scored project at the level."""
        by_category: Dict[str, List[Project]] = defaultdict(list)
        for project in projects:
            if level_filter is not None and project.level != level_filter:
                continue
            if project.status != ProjectStatus.COMPLETED or project.id not in final_scores:
                continue
            by_category[project.category].append(project)

        scored: List[ScoredProject] = []
        for category in sorted(by_category):
            group = sorted(
                by_category[category],
                key=lambda p: (-final_scores[p.id], p.reg_no or "", p.id),
            )
            size = len(group)
            ranks = RankingService.competition_ranks([final_scores[p.id] for p in group])
            for project, rank in zip(group, ranks):
                scored.append(ScoredProject(project, final_scores[project.id], rank, size - rank + 1))
        return scored

    @staticmethod
    def rank_items(points: Mapping[str, float]) -> List[RankedItem]:
        """Rank named totals: points DESC, name ASC for display, ties share a rank."""
        ordered = sorted(points.items(), key=lambda item: (-item[1], item[0]))
        ranks = RankingService.competition_ranks([total for _, total in ordered])
        return [
            RankedItem(name=name, total_points=total, rank=rank)
            for (name, total), rank in zip(ordered, ranks)
        ]

    @staticmethod
    def locate(project: Project) -> ProjectLocation:
        """Static school mapping first, then the project's recorded location."""
        mapping = get_school_mapping(project.school)
        if mapping is not None:
            return ProjectLocation(mapping.school, mapping.zone, mapping.sub_county, mapping.county, mapping.region)
        return ProjectLocation(project.school, project.zone, project.sub_county, project.county, project.region)

    @staticmethod
    def _roster(actor: ActorContext) -> Tuple[List[str], List[str], List[str], List[str], List[str]]:
        """Every entity in the actor's scope, listed even with zero points."""
        scope = actor.scope()
        mappings = [m for m in SCHOOL_MAPPINGS if actor.covers(m.region, m.county, m.sub_county)]
        zones = list(dict.fromkeys(m.zone for m in mappings))
        schools = [m.school for m in mappings]

        if "sub_county" in scope:
            return [scope["region"]], [scope["county"]], [scope["sub_county"]], zones, schools
        if "county" in scope:
            return (
                [scope["region"]],
                [scope["county"]],
                sub_counties_in_county(scope["county"]),
                zones,
                schools,
            )
        if "region" in scope:
            return (
                [scope["region"]],
                counties_in_region(scope["region"]),
                sub_counties_in_region(scope["region"]),
                zones,
                schools,
            )
        return all_regions(), all_counties(), all_sub_counties(), zones, schools

    @staticmethod
    def generate_ranking_report(
        projects: Iterable[Project],
        final_scores: Mapping[int, float],
        level_filter: Optional[ProjectLevel],
        actor: ActorContext,
    ) -> HierarchicalRankings:
        """
        Ranked regions, counties, sub-counties, zones and schools for the
        actor's scope. Points are earned against the full category cohort;
        the scope only decides which entities are listed.
        """
        scored = RankingService.calculate_project_points(projects, final_scores, level_filter)

        tiers = {name: defaultdict(float) for name in ("regions", "counties", "sub_counties", "zones", "schools")}
        for item in scored:
            where = RankingService.locate(item.project)
            if not actor.covers(where.region, where.county, where.sub_county):
                continue
            tiers["schools"][where.school] += item.points
            if where.zone:
                tiers["zones"][where.zone] += item.points
            tiers["sub_counties"][where.sub_county] += item.points
            tiers["counties"][where.county] += item.points
            tiers["regions"][where.region] += item.points

        regions, counties, sub_counties, zones, schools = RankingService._roster(actor)
        rosters = {
            "regions": regions,
            "counties": counties,
            "sub_counties": sub_counties,
            "zones": zones,
            "schools": schools,
        }

        ranked = {}
        for tier, totals in tiers.items():
            listed = {name: 0.0 for name in rosters[tier]}
            listed.update(totals)
            ranked[tier] = RankingService.rank_items(listed)

        logger.info(
            f"Ranking report level={level_filter.value if level_filter else 'all'} "
            f"actor={actor.id} ({actor.role.value}): {len(scored)} projects pointed"
        )
        return HierarchicalRankings(**ranked)

    @staticmethod
    async def build_ranking_report(
        db: AsyncSession,
        level_filter: Optional[ProjectLevel],
        actor: ActorContext,
    ) -> HierarchicalRankings:
        """Load the level's projects and their aggregates, then rank."""
        query = select(Project).where(Project.status == ProjectStatus.COMPLETED)
        if level_filter is not None:
            query = query.where(Project.level == level_filter)
        result = await db.execute(query.order_by(Project.id))
        projects = list(result.scalars().all())

        scores = await load_scores_for_projects(db, projects)
        final_scores = {pid: s.final_score for pid, s in scores.items()}
        return RankingService.generate_ranking_report(projects, final_scores, level_filter, actor)
