from listing_pipeline.matchers import (
    find_duplicate_verdicts,
    find_duplicates,
    is_loose_duplicate,
    is_strict_duplicate,
)
from listing_pipeline.matchers.duplicate_matcher import duplicate_reason, name_similarity
from listing_pipeline.models import BusinessRecord, DedupeMode, DuplicateReason


def test_strict_phone_duplicate_despite_name_formatting():
    candidate = BusinessRecord(name="Joe's Cafe", phone="0412 345 678", suburb="Richmond")
    existing = BusinessRecord(name="Joes Cafe Richmond", phone="+61412345678", suburb="Richmond")

    assert is_strict_duplicate(candidate, existing)
    assert duplicate_reason(candidate, existing, DedupeMode.STRICT) is DuplicateReason.PHONE_MATCH


def test_strict_duplicate_is_symmetric():
    pairs = [
        (BusinessRecord(name="A", phone="(02) 9876 5432"), BusinessRecord(name="B", phone="+61 2 9876 5432")),
        (BusinessRecord(name="A", website="https://www.a.com.au"), BusinessRecord(name="B", website="a.com.au")),
        (BusinessRecord(name="Cafe", suburb="Carlton"), BusinessRecord(name="Cafe", suburb="Fitzroy")),
    ]
    for a, b in pairs:
        assert is_strict_duplicate(a, b) == is_strict_duplicate(b, a)


def test_strict_domain_and_name_suburb_matches():
    a = BusinessRecord(name="Alpha", website="https://www.alpha.com.au/contact")
    b = BusinessRecord(name="Beta", website="alpha.com.au")
    assert duplicate_reason(a, b, DedupeMode.STRICT) is DuplicateReason.DOMAIN_MATCH

    c = BusinessRecord(name="Joe's Bakery", suburb="Carlton")
    d = BusinessRecord(name="joes bakery", suburb="CARLTON")
    assert duplicate_reason(c, d, DedupeMode.STRICT) is DuplicateReason.NAME_SUBURB_MATCH


def test_unrecognised_phones_never_match():
    a = BusinessRecord(name="A", phone="12345")
    b = BusinessRecord(name="B", phone="12345")
    assert not is_strict_duplicate(a, b)


def test_blank_names_are_not_duplicates_of_each_other():
    a = BusinessRecord(name="", suburb="Bondi")
    b = BusinessRecord(name="!!", suburb="Bondi")
    assert name_similarity(a, b) == 0.0
    assert not is_loose_duplicate(a, b)
    assert not is_strict_duplicate(a, b)


def test_loose_duplicate_same_suburb():
    candidate = BusinessRecord(name="Aussie Plumbing Co", suburb="Footscray")
    existing = BusinessRecord(name="Aussie Plumbing Company", suburb="Footscray")

    assert not is_strict_duplicate(candidate, existing)
    assert name_similarity(candidate, existing) > 0.80
    assert is_loose_duplicate(candidate, existing)
    assert duplicate_reason(candidate, existing, DedupeMode.LOOSE) is DuplicateReason.FUZZY_NAME_MATCH
    assert duplicate_reason(candidate, existing, DedupeMode.STRICT) is None


def test_loose_duplicate_different_suburb():
    candidate = BusinessRecord(name="Aussie Plumbing Co", suburb="Footscray")
    existing = BusinessRecord(name="Aussie Plumbing Company", suburb="Sunshine")
    assert not is_loose_duplicate(candidate, existing)


def test_loose_threshold_is_exclusive():
    # one substitution in five characters
    a = BusinessRecord(name="abcde", suburb="Bondi")
    b = BusinessRecord(name="abcdx", suburb="Bondi")
    similarity = name_similarity(a, b)

    assert abs(similarity - 0.80) < 1e-9
    assert not is_loose_duplicate(a, b)
    assert not is_loose_duplicate(a, b, threshold=similarity)


def test_loose_threshold_just_above():
    # nineteen substitutions in a hundred characters
    a = BusinessRecord(name="a" * 100, suburb="Bondi")
    b = BusinessRecord(name="a" * 81 + "b" * 19, suburb="Bondi")

    assert abs(name_similarity(a, b) - 0.81) < 1e-9
    assert is_loose_duplicate(a, b)


def test_find_duplicate_verdicts_in_pool_order_and_skips_self():
    candidate = BusinessRecord(id="new", name="Joe's Cafe", phone="0412 345 678", suburb="Richmond")
    pool = [
        BusinessRecord(id="new", name="Joe's Cafe", phone="0412 345 678", suburb="Richmond"),
        BusinessRecord(id="1", name="Other", suburb="Richmond"),
        BusinessRecord(id="2", name="Joes Cafe", suburb="Richmond"),
        BusinessRecord(id="3", name="Different Name", phone="+61412345678"),
    ]

    verdicts = find_duplicate_verdicts(candidate, pool, DedupeMode.STRICT)

    assert [v.matched_record_id for v in verdicts] == ["2", "3"]
    assert [v.reason for v in verdicts] == [DuplicateReason.NAME_SUBURB_MATCH, DuplicateReason.PHONE_MATCH]
    assert all(v.mode is DedupeMode.STRICT for v in verdicts)


def test_find_duplicates_exclude_id_and_none_mode():
    candidate = BusinessRecord(name="Joe's Cafe", suburb="Richmond")
    pool = [
        BusinessRecord(id="1", name="Joes Cafe", suburb="Richmond"),
        BusinessRecord(id="2", name="JOE'S CAFE", suburb="richmond"),
    ]

    assert [r.id for r in find_duplicates(candidate, pool, DedupeMode.STRICT, exclude_id="1")] == ["2"]
    assert find_duplicates(candidate, pool, DedupeMode.NONE) == []
    assert find_duplicate_verdicts(candidate, pool, "none") == []
