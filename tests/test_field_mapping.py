from listing_pipeline.field_mapping import (
    CUSTOM_CONFIDENCE,
    DIRECT_CONFIDENCE,
    FUZZY_CONFIDENCE,
    apply_field_mapping,
    map_headers,
    match_header,
    missing_required_fields,
)


def test_match_header_direct_and_pattern():
    assert match_header("Email") == ("email", DIRECT_CONFIDENCE)
    assert match_header("Business Name") == ("name", 85)
    assert match_header("Telephone") == ("phone", 85)
    assert match_header("ABN_Number") == ("abn", 95)
    assert match_header("Postal_Code") == ("postcode", 80)


def test_match_header_containment_and_fuzzy():
    assert match_header("Primary Email") == ("email", DIRECT_CONFIDENCE)
    assert match_header("Main Telephone Line") == ("phone", DIRECT_CONFIDENCE)
    assert match_header("catgory") == ("category", FUZZY_CONFIDENCE)
    assert match_header("Opening Hours") is None
    assert match_header("   ") is None


def test_map_headers():
    headers = ["Business Name", "Telephone", "City", "Industry", "Opening Hours"]

    result = map_headers(headers)

    assert result.detected == {
        "Business Name": "name",
        "Telephone": "phone",
        "City": "suburb",
        "Industry": "category",
    }
    assert result.unmapped == ["Opening Hours"]
    assert result.missing == ["email"]
    assert result.confidence["Business Name"] == 85


def test_custom_mapping_wins():
    result = map_headers(["Title", "Shop"], custom_mapping={"Shop": "name", "Title": "category", "Ignored": "name"})

    assert result.detected == {"Shop": "name", "Title": "category"}
    assert result.confidence == {"Shop": CUSTOM_CONFIDENCE, "Title": CUSTOM_CONFIDENCE}


def test_apply_field_mapping_keeps_first_non_blank_value():
    row = {"Business Name": "Joe's Cafe", "Company": "", "Extra": "kept"}
    mapping = {"Business Name": "name", "Company": "name"}

    assert apply_field_mapping(row, mapping) == {"name": "Joe's Cafe", "Extra": "kept"}


def test_missing_required_fields():
    assert missing_required_fields({"name": "Joe's Cafe", "suburb": " ", "category": None}) == ["suburb", "category"]
    assert missing_required_fields({"name": "x", "suburb": "y", "category": "z"}) == []


def test_specific_field_wins_over_name():
    assert match_header("Suburb Name") == ("suburb", DIRECT_CONFIDENCE)
    assert match_header("Category Name") == ("category", DIRECT_CONFIDENCE)
    assert match_header("Contact Name") == ("name", DIRECT_CONFIDENCE)
    assert match_header("Email Address") == ("email", DIRECT_CONFIDENCE)

    result = map_headers(["Business Name", "Suburb Name", "Category"])
    assert result.detected == {"Business Name": "name", "Suburb Name": "suburb", "Category": "category"}

    row = apply_field_mapping({"Business Name": "Joe's Cafe", "Suburb Name": "Carlton", "Category": "Cafe"}, result.detected)
    assert missing_required_fields(row) == []
