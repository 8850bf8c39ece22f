# tests/test_settings.py
from study_srs.settings import DEFAULT_REVIEW_LIMIT, get_review_limit, get_setting, set_setting


def test_setting_round_trip(tmp_db):
    assert get_setting(tmp_db, "theme", "light") == "light"
    set_setting(tmp_db, "theme", "dark")
    set_setting(tmp_db, "theme", "sepia")
    assert get_setting(tmp_db, "theme") == "sepia"


def test_review_limit_default_and_override(tmp_db):
    assert get_review_limit(tmp_db) == DEFAULT_REVIEW_LIMIT
    set_setting(tmp_db, "review_limit", "25")
    assert get_review_limit(tmp_db) == 25


def test_review_limit_bad_values_fall_back(tmp_db):
    set_setting(tmp_db, "review_limit", "many")
    assert get_review_limit(tmp_db) == DEFAULT_REVIEW_LIMIT
    set_setting(tmp_db, "review_limit", "0")
    assert get_review_limit(tmp_db) == DEFAULT_REVIEW_LIMIT
