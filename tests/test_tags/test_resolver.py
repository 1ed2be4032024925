"""Tests for TagResolver."""

import pytest

from tbrlist.tags.errors import DuplicateTagError, PersistenceFailure
from tbrlist.tags.repository import InMemoryTagRepository, SqlTagRepository
from tbrlist.tags.resolver import TagResolver
from tbrlist.tags.similarity import SimilarityPolicy, find_similar_tag


@pytest.fixture(params=["memory", "sql"])
def repo(request, db):
    """Each repository implementation, empty."""
    if request.param == "memory":
        return InMemoryTagRepository()
    return SqlTagRepository(db)


@pytest.fixture
def resolver(repo):
    """Resolver with the default policy."""
    return TagResolver(repo)


class StaleReads:
    """Mixin whose first scans miss tags another caller just stored."""

    stale_reads = 0

    def list_tags(self):
        if self.stale_reads:
            self.stale_reads -= 1
            return []
        return super().list_tags()


class FailingCreates:
    """Mixin that fails the nth create."""

    fail_on = 0
    creates = 0

    def create_tag(self, name, normalized_name):
        self.creates += 1
        if self.creates == self.fail_on:
            raise PersistenceFailure("disk full")
        return super().create_tag(name, normalized_name)


class StaleMemoryRepository(StaleReads, InMemoryTagRepository):
    pass


class StaleSqlRepository(StaleReads, SqlTagRepository):
    pass


class FailingMemoryRepository(FailingCreates, InMemoryTagRepository):
    pass


class FailingSqlRepository(FailingCreates, SqlTagRepository):
    pass


@pytest.fixture(params=["memory", "sql"])
def stale_repo(request, db):
    """Repository of each implementation with stale first reads."""
    if request.param == "memory":
        return StaleMemoryRepository()
    return StaleSqlRepository(db)


@pytest.fixture(params=["memory", "sql"])
def failing_repo(request, db):
    """Repository of each implementation that fails the second create."""
    repo = FailingMemoryRepository() if request.param == "memory" else FailingSqlRepository(db)
    repo.fail_on = 2
    return repo


class TestResolve:
    """Tests for resolving candidate batches."""

    def test_creates_new_tags(self, resolver, repo):
        """Test unseen candidates become tags."""
        results = resolver.resolve(["Slow Burn", "Dark Academia"])

        assert [r.name for r in results] == ["Slow Burn", "Dark Academia"]
        assert all(r.is_new for r in results)
        assert len(repo.list_tags()) == 2

    def test_matches_existing_tag(self, resolver, repo):
        """Test a candidate resolves to the stored tag and its name."""
        existing = repo.create_tag("slow burn", "slow burn")

        results = resolver.resolve(["Slow-Burn"])

        assert len(results) == 1
        assert results[0].id == existing.id
        assert results[0].name == "slow burn"
        assert results[0].is_new is False

    def test_fuzzy_match_uses_canonical_name(self, resolver, repo):
        """Test a near spelling takes the stored spelling."""
        existing = repo.create_tag("cozy vibe", "cozy vibe")

        result = resolver.resolve(["Cozy Vibes"])[0]

        assert result.id == existing.id
        assert result.name == "cozy vibe"
        assert not result.is_new

    def test_batch_in_order_dedup(self, resolver, repo):
        """Test repeats in a batch share the tag created by the first."""
        results = resolver.resolve(["comfort read", "Comfort Read", "cozy"])

        assert len(results) == 3
        assert results[0].id == results[1].id
        assert results[0].is_new is True
        assert results[1].is_new is False
        assert results[1].name == "comfort read"
        assert results[2].id != results[0].id
        assert results[2].is_new is True
        assert len(repo.list_tags()) == 2

    def test_end_to_end_scenario(self, resolver, repo):
        """Test the canonical name comes from the first occurrence."""
        results = resolver.resolve(["Enemies to Lovers", "enemies-to-lovers", "found family"])

        tags = repo.list_tags()
        assert [tag.name for tag in tags] == ["Enemies to Lovers", "found family"]
        assert results[1].id == results[0].id
        assert results[1].name == "Enemies to Lovers"
        assert results[1].is_new is False
        assert results[2].is_new is True

    def test_keeps_raw_casing(self, resolver, repo):
        """Test the stored name keeps the candidate's casing."""
        resolver.resolve(["  Morally GREY Heroes "])

        tag = repo.list_tags()[0]
        assert tag.name == "Morally GREY Heroes"
        assert tag.normalized_name == "morally grey heroes"

    def test_blank_candidates_skipped(self, resolver, repo):
        """Test blank candidates produce no tag and no result."""
        candidates = ["", "   ", "--", "cozy"]

        results = resolver.resolve(candidates)

        assert len(results) == 1
        assert len(results) != len(candidates)
        assert [r.name for r in results] == ["cozy"]
        assert len(repo.list_tags()) == 1

    def test_empty_batch(self, resolver, repo):
        """Test an empty batch does nothing."""
        assert resolver.resolve([]) == []
        assert repo.list_tags() == []

    def test_accepts_any_iterable(self, resolver):
        """Test candidates can be a generator."""
        results = resolver.resolve(name for name in ["cozy", "dark academia"])

        assert len(results) == 2

    def test_second_call_matches_first(self, resolver):
        """Test later batches match tags created by earlier ones."""
        first = resolver.resolve(["Found Family"])[0]
        second = resolver.resolve(["found_family"])[0]

        assert second.id == first.id
        assert second.is_new is False

    def test_custom_policy(self, repo):
        """Test the resolver honours its similarity policy."""
        repo.create_tag("cozy vibe", "cozy vibe")
        strict = TagResolver(repo, policy=SimilarityPolicy(min_distance=0, length_ratio=0.0))

        result = strict.resolve(["cozy vibes"])[0]

        assert result.is_new is True
        assert len(repo.list_tags()) == 2

    def test_invalid_max_attempts(self, repo):
        """Test max_attempts must be positive."""
        with pytest.raises(ValueError):
            TagResolver(repo, max_attempts=0)


class TestAtomicity:
    """Tests for all-or-nothing batches."""

    def test_failure_rolls_back_whole_batch(self, failing_repo):
        """Test a failed create discards tags created earlier in the batch."""
        resolver = TagResolver(failing_repo)

        with pytest.raises(PersistenceFailure):
            resolver.resolve(["cozy", "dark academia", "slow burn"])

        assert failing_repo.list_tags() == []

    def test_existing_tags_untouched_by_failure(self, failing_repo):
        """Test a failed batch leaves previously stored tags alone."""
        failing_repo.create_tag("Found Family", "found family")  # create #1
        resolver = TagResolver(failing_repo)

        with pytest.raises(PersistenceFailure):
            resolver.resolve(["cozy"])  # create #2 fails

        assert [tag.name for tag in failing_repo.list_tags()] == ["Found Family"]

    def test_store_usable_after_failed_batch(self, failing_repo):
        """Test the next batch succeeds once the failure has passed."""
        resolver = TagResolver(failing_repo)
        with pytest.raises(PersistenceFailure):
            resolver.resolve(["cozy", "dark academia"])

        results = resolver.resolve(["cozy", "dark academia"])

        assert all(r.is_new for r in results)
        assert [tag.name for tag in failing_repo.list_tags()] == ["cozy", "dark academia"]


class TestConcurrentCreates:
    """Tests for collisions with tags created by other callers."""

    def test_conflict_re_resolves_as_match(self, stale_repo):
        """Test a colliding create is retried and resolves to the stored tag."""
        stored = stale_repo.create_tag("Slow Burn", "slow burn")
        stale_repo.stale_reads = 1
        resolver = TagResolver(stale_repo)

        results = resolver.resolve(["cozy", "slow-burn"])

        assert results[0].is_new is True
        assert results[1].id == stored.id
        assert results[1].name == "Slow Burn"
        assert results[1].is_new is False
        assert [tag.name for tag in stale_repo.list_tags()] == ["Slow Burn", "cozy"]

    def test_gives_up_after_max_attempts(self, stale_repo):
        """Test repeated collisions end in a PersistenceFailure."""
        stale_repo.create_tag("Slow Burn", "slow burn")
        stale_repo.stale_reads = 5
        resolver = TagResolver(stale_repo, max_attempts=2)

        with pytest.raises(PersistenceFailure) as exc_info:
            resolver.resolve(["cozy", "slow burn"])

        assert not isinstance(exc_info.value, DuplicateTagError)
        assert isinstance(exc_info.value.__cause__, DuplicateTagError)
        stale_repo.stale_reads = 0
        assert [tag.name for tag in stale_repo.list_tags()] == ["Slow Burn"]

    def test_fuzzy_near_duplicates_race_is_not_prevented(self, repo):
        """Test two callers that both miss each other can store near-duplicates.

        Only normalized-equal names conflict in storage; names that differ
        within the fuzzy threshold are both kept when resolved from stale
        snapshots.
        """
        corpus_before = repo.list_tags()

        TagResolver(repo).resolve(["cozy vibes"])
        # A second caller decided from the snapshot taken before that create
        assert find_similar_tag("cozy vibe", corpus_before) is None
        repo.create_tag("cozy vibe", "cozy vibe")

        tags = repo.list_tags()
        assert [tag.name for tag in tags] == ["cozy vibes", "cozy vibe"]
        assert find_similar_tag("cozy vibe", tags[:1]) is tags[0]
