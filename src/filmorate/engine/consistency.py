"""Consistency engine – the only mutation path for ledger edges.

Keeps associations referentially sound:
  - association sets are reconciled by diff-and-apply, never blind inserts
  - deleting an entity sweeps every edge that mentions it first
  - an edge is only added while both of its entities exist
  - friendship and review votes follow their per-pair rules

Each public operation is one unit of work: it holds the keyed locks for the
ledger keys it touches, commits once at the end and rolls back on failure, so
concurrent readers never observe a half-applied state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from filmorate.engine.locks import EDGE_LOCKS, KeyedLocks, LockKey, left_key, right_key
from filmorate.errors import NotFoundError, ValidationError
from filmorate.logging import get_logger
from filmorate.models.enums import (
    ENDPOINTS,
    SINGLE_VALUED_KINDS,
    TAG_KINDS,
    EntityKind,
    RelationKind,
    Side,
    VotePolarity,
)
from filmorate.stores.database import unit_of_work
from filmorate.stores.entity_store import EntityStore
from filmorate.stores.feed import FeedStore
from filmorate.stores.ledger import RelationLedger

log = get_logger("consistency")


# ── Cascade configuration ───────────────────────────────
# Ledger kinds swept when an entity of a given type is deleted, and on which
# side of the edge the entity sits.
CASCADE_SWEEPS: dict[EntityKind, tuple[tuple[RelationKind, Side], ...]] = {
    EntityKind.GENRE: ((RelationKind.GENRE, Side.RIGHT),),
    EntityKind.CLASSIFICATION: ((RelationKind.CLASSIFICATION, Side.RIGHT),),
    EntityKind.DIRECTOR: ((RelationKind.DIRECTOR, Side.RIGHT),),
    EntityKind.PERSON: (
        (RelationKind.FRIENDSHIP, Side.LEFT),
        (RelationKind.FRIENDSHIP, Side.RIGHT),
        (RelationKind.LIKE, Side.LEFT),
        (RelationKind.REVIEW_VOTE, Side.LEFT),
    ),
    EntityKind.FILM: (
        (RelationKind.LIKE, Side.RIGHT),
        (RelationKind.GENRE, Side.LEFT),
        (RelationKind.CLASSIFICATION, Side.LEFT),
        (RelationKind.DIRECTOR, Side.LEFT),
    ),
    EntityKind.REVIEW: ((RelationKind.REVIEW_VOTE, Side.RIGHT),),
}

# Entity types whose deletion also deletes the reviews that reference them
_REVIEW_OWNERS = (EntityKind.FILM, EntityKind.PERSON)

# Extra writes (feed rows) a caller wants committed together with an operation
Also = Callable[[], Awaitable[Any]] | None


@dataclass
class ReconcileResult:
    kind: RelationKind
    added: set[int] = field(default_factory=set)
    removed: set[int] = field(default_factory=set)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


@dataclass
class CascadeReport:
    entity_kind: EntityKind
    entity_id: int
    deleted: bool = False
    edges_removed: int = 0
    reviews_removed: list[int] = field(default_factory=list)


def _sweep_key(kind: RelationKind, side: Side, entity_id: int) -> LockKey:
    return left_key(kind, entity_id) if side is Side.LEFT else right_key(kind, entity_id)


class ConsistencyEngine:
    """Reconciles association sets, cascades deletes, and applies pair mutations."""

    def __init__(self, session: AsyncSession, locks: KeyedLocks | None = None) -> None:
        self._session = session
        self._locks = locks or EDGE_LOCKS
        self.ledger = RelationLedger(session)
        self.entities = EntityStore(session)
        self.feed = FeedStore(session)

    # ── Endpoint checks ─────────────────────────────────
    # Called under the keyed locks: an entity removed by a cascade that held
    # the same keys is seen as gone.
    async def _require(self, kind: EntityKind, entity_id: int) -> None:
        if not await self.entities.exists(kind, entity_id):
            raise NotFoundError(kind.value.capitalize(), entity_id)

    async def _require_endpoints(self, kind: RelationKind, left: int, right: int) -> None:
        left_kind, right_kind = ENDPOINTS[kind]
        await self._require(left_kind, left)
        await self._require(right_kind, right)

    # ── Pair mutations ──────────────────────────────────
    async def _toggle(self, kind: RelationKind, left: int, right: int, present: bool, also: Also) -> bool:
        async with self._locks.hold(left_key(kind, left), right_key(kind, right)):
            async with unit_of_work(self._session, f"set_{kind.value}"):
                if present:
                    await self._require_endpoints(kind, left, right)
                    changed = await self.ledger.add_edge(kind, left, right)
                else:
                    changed = await self.ledger.remove_edge(kind, left, right)
                if also is not None:
                    await also()
        return changed

    async def set_friendship(self, person_id: int, friend_id: int, present: bool, *, also: Also = None) -> bool:
        """Add or remove the single directed edge ``person → friend``.

        The reverse edge is untouched; mutual friendship takes two calls.
        """
        changed = await self._toggle(RelationKind.FRIENDSHIP, person_id, friend_id, present, also)
        log.info("friendship_set", person_id=person_id, friend_id=friend_id, present=present, changed=changed)
        return changed

    async def set_like(self, person_id: int, film_id: int, present: bool, *, also: Also = None) -> bool:
        changed = await self._toggle(RelationKind.LIKE, person_id, film_id, present, also)
        log.info("like_set", person_id=person_id, film_id=film_id, present=present, changed=changed)
        return changed

    async def set_vote(self, person_id: int, review_id: int, polarity: VotePolarity) -> bool:
        """Replace the person's vote on a review; NONE just clears it.

        Returns True when the stored vote changed.
        """
        kind = RelationKind.REVIEW_VOTE
        polarity = VotePolarity(polarity)
        async with self._locks.hold(left_key(kind, person_id), right_key(kind, review_id)):
            async with unit_of_work(self._session, "set_vote"):
                previous = await self.ledger.payload_of(kind, person_id, review_id)
                await self.ledger.remove_edge(kind, person_id, review_id)
                if polarity is not VotePolarity.NONE:
                    await self._require_endpoints(kind, person_id, review_id)
                    await self.ledger.add_edge(kind, person_id, review_id, payload=polarity.value)
        current = None if polarity is VotePolarity.NONE else polarity.value
        log.info("vote_set", person_id=person_id, review_id=review_id, polarity=polarity.name)
        return previous != current

    # ── Reconciliation ──────────────────────────────────
    async def reconcile_associations(
        self, film_id: int, kind: RelationKind, declared: Iterable[int],
    ) -> ReconcileResult:
        """Make the film's stored ``kind`` set equal ``declared``.

        An empty ``declared`` clears the set. Removals run before additions so
        a single-valued kind never holds two values at once.
        """
        results = await self.reconcile_film(film_id, {kind: declared})
        return results[kind]

    @staticmethod
    def _declared_sets(declared: Mapping[RelationKind, Iterable[int]]) -> dict[RelationKind, set[int]]:
        wanted = {kind: set(ids) for kind, ids in declared.items()}
        for kind, ids in wanted.items():
            if kind not in TAG_KINDS:
                raise ValueError(f"{kind.value} is not a film association kind")
            if kind in SINGLE_VALUED_KINDS and len(ids) > 1:
                raise ValidationError(f"a film carries at most one {kind.value}, got {sorted(ids)}")
        return wanted

    async def _apply(
        self,
        film_id: int,
        wanted: dict[RelationKind, set[int]],
        stored: dict[RelationKind, set[int]],
    ) -> dict[RelationKind, ReconcileResult]:
        for kind, ids in wanted.items():
            gone = await self.entities.missing(ENDPOINTS[kind][1], ids - stored[kind])
            if gone:
                raise NotFoundError(ENDPOINTS[kind][1].value.capitalize(), min(gone))

        results = {}
        for kind, ids in wanted.items():
            result = ReconcileResult(kind)
            for tag_id in sorted(stored[kind] - ids):
                if await self.ledger.remove_edge(kind, film_id, tag_id):
                    result.removed.add(tag_id)
            for tag_id in sorted(ids - stored[kind]):
                if await self.ledger.add_edge(kind, film_id, tag_id):
                    result.added.add(tag_id)
            results[kind] = result
        return results

    async def reconcile_film(
        self,
        film_id: int,
        declared: Mapping[RelationKind, Iterable[int]],
        *,
        fields: Mapping[str, Any] | None = None,
    ) -> dict[RelationKind, ReconcileResult]:
        """Reconcile several association kinds of one film in a single commit.

        ``fields`` are film columns written in the same unit of work. Raises
        NotFoundError when the film or a tag to be added no longer exists.
        """
        wanted = self._declared_sets(declared)

        async with self._locks.hold(*(left_key(kind, film_id) for kind in wanted)):
            stored = {kind: await self.ledger.targets(kind, film_id) for kind in wanted}
            touched = [
                right_key(kind, tag_id)
                for kind in wanted
                for tag_id in stored[kind] ^ wanted[kind]
            ]
            async with self._locks.hold(*touched):
                async with unit_of_work(self._session, "reconcile_associations"):
                    await self._require(EntityKind.FILM, film_id)
                    if fields:
                        await self.entities.update(EntityKind.FILM, film_id, **fields)
                    results = await self._apply(film_id, wanted, stored)

        self._log_reconciled(film_id, results)
        return results

    async def insert_film(
        self, fields: Mapping[str, Any], declared: Mapping[RelationKind, Iterable[int]],
    ) -> tuple[Any, dict[RelationKind, ReconcileResult]]:
        """Create a film together with its initial association sets."""
        wanted = self._declared_sets(declared)
        # a fresh id has no left keys anyone else could hold
        touched = [right_key(kind, tag_id) for kind, ids in wanted.items() for tag_id in ids]
        async with self._locks.hold(*touched):
            async with unit_of_work(self._session, "insert_film"):
                row = await self.entities.create(EntityKind.FILM, **fields)
                results = await self._apply(row.id, wanted, {kind: set() for kind in wanted})

        self._log_reconciled(row.id, results)
        return row, results

    @staticmethod
    def _log_reconciled(film_id: int, results: dict[RelationKind, ReconcileResult]) -> None:
        for kind, result in results.items():
            if result.changed:
                log.info(
                    "associations_reconciled",
                    film_id=film_id,
                    kind=kind.value,
                    added=sorted(result.added),
                    removed=sorted(result.removed),
                )

    # ── Cascade delete ──────────────────────────────────
    async def _owned_reviews(self, entity_kind: EntityKind, entity_id: int) -> list[int]:
        if entity_kind is EntityKind.FILM:
            return await self.entities.review_ids_for_film(entity_id)
        if entity_kind is EntityKind.PERSON:
            return await self.entities.review_ids_by_person(entity_id)
        return []

    @staticmethod
    def _cascade_keys(entity_kind: EntityKind, entity_id: int, reviews: list[int]) -> list[LockKey]:
        keys = [_sweep_key(kind, side, entity_id) for kind, side in CASCADE_SWEEPS[entity_kind]]
        keys += [
            _sweep_key(kind, side, review_id)
            for review_id in reviews
            for kind, side in CASCADE_SWEEPS[EntityKind.REVIEW]
        ]
        return keys

    async def _cascade(self, report: CascadeReport, reviews: list[int]) -> None:
        """Sweep and delete one entity inside an open unit of work."""
        entity_kind, entity_id = report.entity_kind, report.entity_id
        if entity_kind in _REVIEW_OWNERS:
            for review_id in reviews:
                report.edges_removed += await self._sweep(EntityKind.REVIEW, review_id)
                if await self.entities.delete(EntityKind.REVIEW, review_id):
                    report.reviews_removed.append(review_id)
        report.edges_removed += await self._sweep(entity_kind, entity_id)
        if entity_kind is EntityKind.PERSON:
            await self.feed.purge_person(entity_id)
        report.deleted = await self.entities.delete(entity_kind, entity_id)

    async def cascade_delete(
        self, entity_kind: EntityKind, entity_id: int, *, also: Also = None,
    ) -> CascadeReport:
        """Remove every edge mentioning the entity, its dependent reviews, then the entity."""
        report = CascadeReport(entity_kind, entity_id)
        reviews = await self._owned_reviews(entity_kind, entity_id)

        async with self._locks.hold(*self._cascade_keys(entity_kind, entity_id, reviews)):
            async with unit_of_work(self._session, "cascade_delete"):
                await self._cascade(report, reviews)
                if also is not None:
                    await also()

        log.info(
            "cascade_complete",
            entity_kind=entity_kind.value,
            entity_id=entity_id,
            deleted=report.deleted,
            edges_removed=report.edges_removed,
            reviews_removed=len(report.reviews_removed),
        )
        return report

    async def cascade_clear(self, entity_kind: EntityKind) -> list[CascadeReport]:
        """Cascade-delete every entity of one kind in a single unit of work.

        Entities created after the ids are listed are left alone.
        """
        ids = await self.entities.ids(entity_kind)
        owned = {entity_id: await self._owned_reviews(entity_kind, entity_id) for entity_id in ids}
        keys = [key for entity_id in ids for key in self._cascade_keys(entity_kind, entity_id, owned[entity_id])]

        reports = [CascadeReport(entity_kind, entity_id) for entity_id in ids]
        async with self._locks.hold(*keys):
            async with unit_of_work(self._session, "cascade_clear"):
                for report in reports:
                    await self._cascade(report, owned[report.entity_id])

        log.info(
            "cascade_clear_complete",
            entity_kind=entity_kind.value,
            deleted=sum(r.deleted for r in reports),
            edges_removed=sum(r.edges_removed for r in reports),
        )
        return reports

    async def _sweep(self, entity_kind: EntityKind, entity_id: int) -> int:
        removed = 0
        for kind, side in CASCADE_SWEEPS[entity_kind]:
            removed += await self.ledger.remove_all(kind, entity_id, side)
        return removed
