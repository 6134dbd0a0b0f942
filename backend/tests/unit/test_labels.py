# backend/tests/unit/test_labels.py
from datetime import datetime, timedelta, timezone

import pytest

from ephemera.models.labels import (
    LABEL_ACTIVE_BLUEPRINT,
    LABEL_MANAGED_BY,
    LABEL_SERVICE,
    LABEL_TTL,
    Labels,
    find_active_blueprint,
    latest_snapshot,
    service_selector,
)


def test_instance_labels_mark_ownership_and_ttl():
    ttl = datetime(2024, 5, 1, 14, 0, tzinfo=timezone.utc)
    labels = Labels.for_instance("alpha", ttl)

    assert labels.is_managed is True
    assert labels.service == "alpha"
    assert labels.get(LABEL_TTL) == str(int(ttl.timestamp()))
    assert labels.ttl == ttl


def test_snapshot_labels_carry_server_type():
    labels = Labels.for_snapshot("alpha", "cx22")

    assert labels.is_managed is True
    assert labels.server_type == "cx22"
    assert labels.has_ttl is False


def test_labels_copy_their_input():
    raw = {LABEL_SERVICE: "alpha"}
    labels = Labels(raw)
    labels.server_type = "cx32"

    assert "ephemera.dev/server-type" not in raw
    assert labels.as_dict() is not labels.as_dict()


def test_foreign_managed_by_value_is_not_managed():
    labels = Labels({LABEL_MANAGED_BY: "someone-else"})
    assert labels.is_managed is False


def test_ttl_absent_is_none():
    assert Labels().ttl is None


def test_ttl_unparsable_raises():
    labels = Labels({LABEL_TTL: "tomorrow"})
    with pytest.raises(ValueError):
        labels.ttl


def test_set_ttl_never_goes_negative():
    labels = Labels()
    labels.set_ttl(datetime(1960, 1, 1, tzinfo=timezone.utc))
    assert labels.get(LABEL_TTL) == "0"


def test_dns_record_ids_round_through_labels():
    labels = Labels()
    labels.dns_a_record_id = "rec-a"
    labels.dns_aaaa_record_id = "rec-aaaa"

    assert labels.dns_a_record_id == "rec-a"
    assert labels.dns_aaaa_record_id == "rec-aaaa"


def test_labels_compare_with_dicts():
    assert Labels({"a": "b"}) == {"a": "b"}
    assert Labels({"a": "b"}) == Labels({"a": "b"})


def test_service_selector():
    assert service_selector("alpha") == "ephemera.dev/service=alpha"


def test_latest_snapshot_picks_newest_for_service(make_snapshot, now):
    older = make_snapshot(id=1, created=now - timedelta(days=2))
    newer = make_snapshot(id=2, created=now - timedelta(days=1))
    other = make_snapshot(id=3, service="beta", created=now)

    assert latest_snapshot([older, newer, other], "alpha") is newer


def test_latest_snapshot_ties_keep_first_seen(make_snapshot, now):
    first = make_snapshot(id=1, created=now)
    second = make_snapshot(id=2, created=now)

    assert latest_snapshot([first, second], "alpha") is first


def test_latest_snapshot_none_without_match(make_snapshot):
    assert latest_snapshot([make_snapshot(service="beta")], "alpha") is None


def test_find_active_blueprint_prefers_newest(make_snapshot, now):
    old = make_snapshot(id=1, labels={LABEL_ACTIVE_BLUEPRINT: "true"}, created=now - timedelta(days=5))
    new = make_snapshot(id=2, labels={LABEL_ACTIVE_BLUEPRINT: "true"}, created=now)
    plain = make_snapshot(id=3)

    assert find_active_blueprint([old, plain, new]) is new
    assert find_active_blueprint([plain]) is None


def test_ttl_out_of_range_raises_value_error():
    labels = Labels({LABEL_TTL: "9" * 30})
    with pytest.raises(ValueError):
        labels.ttl
