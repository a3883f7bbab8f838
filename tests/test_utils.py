from vidmux.utils import backoff_delays, derive_output_name, locator_suffix, slugify


def test_slugify_normalizes_to_ascii():
    assert slugify("Meet Swift Concurrency — Part 1!") == "meet-swift-concurrency-part-1"
    assert slugify("???") == "video"


def test_backoff_doubles_and_caps():
    assert backoff_delays(3, 0.5, 4.0) == [0.5, 1.0]
    assert backoff_delays(6, 0.5, 4.0) == [0.5, 1.0, 2.0, 4.0, 4.0]
    assert backoff_delays(1, 0.5, 4.0) == []


def test_output_name_prefers_title_then_locator():
    locator = "https://cdn.example.com/media/wwdc_101_hd.mp4?token=abc"
    assert derive_output_name("Keynote", locator) == "keynote"
    assert derive_output_name(None, locator) == "wwdc-101-hd"
    assert derive_output_name("  ", "https://cdn.example.com/") == "video"


def test_locator_suffix_ignores_query():
    assert locator_suffix("https://cdn.example.com/a/b.WEBM?x=1") == "webm"
    assert locator_suffix("https://cdn.example.com/a/b") == ""
