"""
Unit Tests: Collision Resolver
"""
import pytest

from study_drive.services.collision_resolver import (
    ResourceExhausted,
    candidate_key,
    resolve_available_key,
)


class AlwaysTakenStore:
    """Store whose existence check never reports a free key."""

    def __init__(self):
        self.probes = 0

    def file_exists(self, key):
        self.probes += 1
        return True


class TestCandidateKey:

    def test_no_suffix_at_zero(self):
        assert candidate_key('os_101', 'notes', '.pdf', 0) == 'uploads/os_101/notes.pdf'

    def test_suffix_before_extension(self):
        assert candidate_key('os_101', 'notes', '.pdf', 3) == 'uploads/os_101/notes(3).pdf'

    def test_suffix_without_extension(self):
        assert candidate_key('root', 'readme', '', 1) == 'uploads/root/readme(1)'


class TestResolveAvailableKey:

    def test_free_key_returned_unchanged(self, s3_service, fake_s3):
        key = resolve_available_key(s3_service, 'os_101', 'notes', '.pdf')
        assert key == 'uploads/os_101/notes.pdf'
        assert fake_s3.calls == ['head_object']

    @pytest.mark.parametrize('taken', [1, 2, 5])
    def test_suffix_matches_number_taken(self, s3_service, fake_s3, taken):
        fake_s3.put('uploads/os_101/notes.pdf')
        for counter in range(1, taken):
            fake_s3.put(f'uploads/os_101/notes({counter}).pdf')

        key = resolve_available_key(s3_service, 'os_101', 'notes', '.pdf')
        assert key == f'uploads/os_101/notes({taken}).pdf'

    def test_gap_in_sequence_is_reused(self, s3_service, fake_s3):
        fake_s3.put('uploads/os_101/notes.pdf')
        fake_s3.put('uploads/os_101/notes(2).pdf')

        key = resolve_available_key(s3_service, 'os_101', 'notes', '.pdf')
        assert key == 'uploads/os_101/notes(1).pdf'

    def test_folder_is_normalized(self, s3_service):
        key = resolve_available_key(s3_service, 'OS 101', 'notes', '.pdf')
        assert key == 'uploads/os_101/notes.pdf'

    def test_ignore_key_counts_as_free(self, s3_service, fake_s3):
        fake_s3.put('uploads/os_101/notes.pdf')
        key = resolve_available_key(
            s3_service, 'os_101', 'notes', '.pdf',
            ignore_key='uploads/os_101/notes.pdf'
        )
        assert key == 'uploads/os_101/notes.pdf'

    def test_bounded_attempts(self):
        store = AlwaysTakenStore()
        with pytest.raises(ResourceExhausted):
            resolve_available_key(store, 'os_101', 'notes', '.pdf', max_attempts=25)
        assert store.probes == 25

    def test_store_failure_propagates(self, s3_service, fake_s3):
        from study_drive.services.s3_service import StorageUnavailable

        fake_s3.fail_on['head_object'] = 'AccessDenied'
        with pytest.raises(StorageUnavailable):
            resolve_available_key(s3_service, 'os_101', 'notes', '.pdf')
