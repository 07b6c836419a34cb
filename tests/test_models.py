"""Tests for image identity and options."""

import pytest

from imgsync.core.types import DEFAULT_LIMIT, DEFAULT_QUERY_LIMIT, SyncOption
from imgsync.exceptions import ConfigError
from imgsync.models import (
    Image,
    SyncOutcome,
    SyncStatus,
    destination_image,
    sort_images,
)


class TestImage:
    """Test Image identity."""

    def test_string_form(self):
        image = Image(repo="gcr.io", user="google-containers", name="pause", tag="3.1")
        assert str(image) == "gcr.io/google-containers/pause:3.1"

    def test_string_form_without_namespace(self):
        image = Image(repo="quay.io", user="", name="flannel", tag="v0.13.0")
        assert str(image) == "quay.io/flannel:v0.13.0"

    def test_equal_images_hash_alike(self):
        a = Image("gcr.io", "ns", "pause", "3.1")
        b = Image("gcr.io", "ns", "pause", "3.1")
        assert a == b
        assert len({a, b}) == 1

    def test_immutable(self):
        image = Image("gcr.io", "ns", "pause", "3.1")
        with pytest.raises(AttributeError):
            image.tag = "3.2"

    def test_repository(self):
        assert Image("gcr.io", "ns", "pause", "3.1").repository == "ns/pause"

    def test_merge_name(self):
        image = Image("gcr.io", "google-containers", "pause", "3.1")
        assert image.merge_name() == "gcr.io_google-containers_pause"

    def test_merge_name_flattens_nested_names(self):
        image = Image("gcr.io", "istio-release", "proxy/v2", "1.0")
        assert image.merge_name() == "gcr.io_istio-release_proxy_v2"

    def test_merge_name_kubeadm(self):
        image = Image("gcr.io", "google-containers", "kube-apiserver", "v1.19.0")
        assert image.merge_name(kubeadm=True) == "k8s.gcr.io_kube-apiserver"

    def test_kubeadm_ignored_for_other_registries(self):
        image = Image("quay.io", "coreos", "flannel", "v0.13.0")
        assert image.merge_name(kubeadm=True) == "quay.io_coreos_flannel"

    def test_destination_image(self):
        image = Image("gcr.io", "google-containers", "pause", "3.1")
        dest = destination_image(image, "mirror")
        assert str(dest) == "docker.io/mirror/gcr.io_google-containers_pause:3.1"

    def test_sort_images_dedupes_and_orders(self):
        b = Image("gcr.io", "ns", "b", "1")
        a1 = Image("gcr.io", "ns", "a", "1")
        a2 = Image("gcr.io", "ns", "a", "2")
        assert sort_images([b, a2, a1, b]) == [a1, a2, b]


class TestSyncOutcome:
    """Test SyncOutcome and SyncStatus."""

    def test_failed_statuses(self):
        assert SyncStatus.FAILED_FETCH.failed
        assert SyncStatus.FAILED_COPY.failed
        assert SyncStatus.FAILED_PERSIST.failed
        assert not SyncStatus.SYNCED.failed
        assert not SyncStatus.SKIPPED_UNCHANGED.failed

    def test_string_form_includes_error(self):
        outcome = SyncOutcome(
            Image("gcr.io", "ns", "a", "1"), SyncStatus.FAILED_COPY, "boom"
        )
        assert str(outcome) == "gcr.io/ns/a:1 [failed_copy]: boom"


class TestSyncOption:
    """Test SyncOption validation."""

    def test_defaults_applied(self):
        option = SyncOption(user="u", password="p").validate()
        assert option.limit == DEFAULT_LIMIT
        assert option.query_limit == DEFAULT_QUERY_LIMIT

    def test_explicit_limit_kept(self):
        option = SyncOption(user="u", password="p", limit=3).validate()
        assert option.limit == 3

    def test_missing_credentials(self):
        with pytest.raises(ConfigError):
            SyncOption(user="u").validate()

    def test_manifests_only_needs_no_credentials(self):
        option = SyncOption(manifests_only=True).validate()
        assert option.manifests_only

    @pytest.mark.parametrize(
        "overrides",
        [
            {"limit": -1},
            {"query_limit": -1},
            {"batch_size": -1},
            {"batch_number": -2},
            {"timeout": 0},
            {"report_level": 9},
            {"sync_retry": 0},
        ],
    )
    def test_invalid_options(self, overrides):
        with pytest.raises(ConfigError):
            SyncOption(user="u", password="p", **overrides).validate()

    def test_batching_requires_both_values(self):
        assert SyncOption(batch_size=2, batch_number=1).batching
        assert not SyncOption(batch_size=2).batching
        assert not SyncOption(batch_number=1).batching

    def test_credentials_repr_hides_password(self):
        option = SyncOption(user="u", password="hunter2")
        assert "hunter2" not in repr(option.credentials)
