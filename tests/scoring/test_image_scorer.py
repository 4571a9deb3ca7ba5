from urllib.parse import urlparse

import pytest

from best_image.config.settings import ScoreConfig
from best_image.crawler.candidate import ImageCandidate, ImageDimensions
from best_image.scoring.image_scorer import (
    ImageScorer,
    has_extension,
    is_valid_src,
    normalize_scores,
    split_filename,
)
from best_image.scoring.similarity import ScoreDeps, compare_two_strings

BASE = "http://www.ask.com/assets/images/"
NO_SIMILARITY = ScoreDeps(string_similarity=lambda a, b: 0.0, urlparse=urlparse)


def _candidate(src, **kwargs):
    return ImageCandidate(src=src, **kwargs)


def _score(candidate, scorer=None):
    scorer = scorer or ImageScorer()
    return scorer.preference_score(candidate)


def _sized(src, width, height, score=0.5):
    return ImageCandidate(
        src=src,
        score=score,
        dimensions=ImageDimensions(loaded=True, width=width, height=height),
    )


# ---------------------------
# Similarity
# ---------------------------
def test_compare_two_strings_bounds():
    assert compare_two_strings("tire repair", "tire repair") == 1.0
    assert compare_two_strings("", "") == 1.0
    assert compare_two_strings("", "tire") == 0.0
    assert compare_two_strings(None, "tire") == 0.0
    assert 0.0 < compare_two_strings("tire repair", "tire-repair-shop") < 1.0


# ---------------------------
# Preference score
# ---------------------------
def test_doc_title_similarity_is_favored():
    src = BASE + "tire-repairtirerepair.gif"
    with_title = _candidate(src, doc_title="How to repair your tire")
    without_title = _candidate(src, doc_title="")

    assert _score(with_title) > _score(without_title)
    assert with_title.title_score > 0


def test_image_title_similarity_is_favored():
    src = BASE + "tire-repair.gif"
    with_title = _candidate(src, doc_title="How to repair your tire", title="Image of tire being repaired")
    without_title = _candidate(src, doc_title="", title="Image of tire being repaired")

    assert _score(with_title) > _score(without_title)


def test_query_similarity_is_weighted_higher():
    scorer = ImageScorer()
    src = BASE + "tire.jpg"
    by_title = _candidate(src, doc_title="tire", title="tire")
    by_query = _candidate(src, query="tire", title="tire")

    assert scorer.preference_score(by_query) > scorer.preference_score(by_title)
    assert by_query.query_score > 0
    assert by_query.title_score == 0


def test_format_preference():
    scorer = ImageScorer(deps=NO_SIMILARITY)
    jpg = _score(_candidate(BASE + "tire-repair.jpg"), scorer)
    jpeg = _score(_candidate(BASE + "tire-repair.JPEG"), scorer)
    gif = _score(_candidate(BASE + "tire-repair.gif"), scorer)
    png = _score(_candidate(BASE + "tire-repair.png"), scorer)
    other = _score(_candidate(BASE + "tire-repair.bmp"), scorer)

    assert jpg == jpeg
    assert jpg > gif > png > other


def test_data_image_gets_format_bonus_only():
    scorer = ImageScorer()
    data = _candidate("data:image/png;base64,iVBORw0KGgo=", doc_title="spacer", query="pixel")

    assert scorer.preference_score(data) == pytest.approx(0.5)
    assert data.title_score == 0
    assert data.bad_words == 0


def test_bad_words_lower_score():
    scorer = ImageScorer(deps=NO_SIMILARITY)
    good = _score(_candidate(BASE + "tire-repair.gif"), scorer)

    bad_word = _candidate(BASE + "search/tire-repair.gif")
    assert _score(bad_word, scorer) < good
    assert bad_word.bad_words == -2.0

    bad_fname = _candidate(BASE + "spacer.gif")
    _score(bad_fname, scorer)
    assert bad_fname.bad_fname_words == -2.0


def test_bad_filename_checks_only_the_last_segment():
    scorer = ImageScorer(deps=NO_SIMILARITY)
    # "up" appears in the directory, not in the filename
    in_dir = _candidate("http://www.ask.com/uploads/tire.gif")
    _score(in_dir, scorer)
    assert in_dir.bad_fname_words == 0

    in_name = _candidate("http://www.ask.com/images/upload.gif")
    _score(in_name, scorer)
    assert in_name.bad_fname_words == -2.0


def test_good_words_stack():
    scorer = ImageScorer(deps=NO_SIMILARITY)
    plain = _score(_candidate(BASE + "tire.gif"), scorer)
    src_only = _score(_candidate(BASE + "page-logo.gif"), scorer)
    everywhere = _score(_candidate(BASE + "page-logo.gif", css_class="main-logo", title="Logo"), scorer)

    assert src_only == pytest.approx(plain + 0.3)
    assert everywhere == pytest.approx(plain + 0.9)


def test_meta_bonus_applies_in_content_phase():
    scorer = ImageScorer(deps=NO_SIMILARITY)
    meta = _candidate("http://www.site.com/og.png", is_meta=True)

    assert _score(meta, scorer) == pytest.approx(10.3)


# ---------------------------
# Ranking
# ---------------------------
def test_find_best_images_ranks_meta_first():
    scorer = ImageScorer()
    candidates = [
        _candidate("http://www.site.com/a.jpg", doc_title="Tire repair"),
        _candidate("http://www.site.com/og.png", doc_title="Tire repair", is_meta=True),
        _candidate("", doc_title="Tire repair"),
        _candidate("http://www.site.com/b.gif", doc_title="Tire repair"),
    ]

    ranked = scorer.find_best_images(candidates)

    assert ranked[0].src == "http://www.site.com/og.png"
    assert ranked[0].score == 1.0
    assert ranked[-1].src == ""
    assert all(r.score <= 1.0 for r in ranked)


def test_hook_runs_after_content_scoring_and_is_resorted():
    scorer = ImageScorer(deps=NO_SIMILARITY)
    candidates = [
        _candidate("http://www.site.com/og.png", is_meta=True),
        _candidate("http://www.site.com/image1.jpg"),
        _candidate("http://www.site.com/image2.gif"),
    ]
    calls = []

    def hook(images, deps, size_phase):
        calls.append(size_phase)
        assert deps is NO_SIMILARITY
        assert images[0].score == 1.0
        for image in images:
            if image.is_meta:
                image.score = 0

    ranked = scorer.find_best_images(candidates, hook)

    assert calls == [False]
    assert [r.src for r in ranked] == [
        "http://www.site.com/image1.jpg",
        "http://www.site.com/image2.gif",
        "http://www.site.com/og.png",
    ]
    assert ranked[0].score == 1.0


def test_normalize_scores():
    # 1. Positive maximum divides
    items = [_candidate("a", score=4.0), _candidate("b", score=2.0), _candidate("c", score=-1.0)]
    normalize_scores(items)
    assert [i.score for i in items] == [1.0, 0.5, -0.25]

    # 2. Single negative score becomes 1
    single = [_candidate("a", score=-3.0)]
    normalize_scores(single)
    assert single[0].score == 1.0

    # 3. All negative keeps the order and the gaps
    negative = [_candidate("a", score=-1.0), _candidate("b", score=-3.0)]
    normalize_scores(negative)
    assert [i.score for i in negative] == [1.0, -1.0]

    # 4. Empty list is a no-op
    normalize_scores([])


# ---------------------------
# Size phase
# ---------------------------
def test_consolidate_drops_missing_entries():
    scorer = ImageScorer()
    checked = [
        _sized("http://a.com/1.jpg", 200, 100),
        None,
        _sized("http://a.com/2.jpg", 640, 480),
        _sized("http://a.com/3.jpg", 10, 10),
        None,
        _sized("http://a.com/4.jpg", 1024, 768),
        _sized("http://a.com/5.jpg", 50, 50),
        _sized("http://a.com/6.jpg", 300, 150),
        _sized("http://a.com/7.jpg", 100, 200),
    ]

    survivors = scorer.consolidate_and_size_rank(checked)

    assert len(survivors) == 7
    assert all(s.size_score is not None for s in survivors)


def test_size_score_prefers_ideal_dimensions():
    scorer = ImageScorer()
    ideal = _sized("ideal", 200, 100)
    large = _sized("large", 1024, 768)
    tiny = _sized("tiny", 10, 10)
    portrait = _sized("portrait", 100, 200)
    unknown = ImageCandidate(src="unknown", dimensions=ImageDimensions(loaded=True))

    assert scorer.size_score(ideal) == pytest.approx(1.0, abs=1e-4)
    assert scorer.size_score(ideal) > scorer.size_score(large)
    assert scorer.size_score(large) > scorer.size_score(tiny)
    assert scorer.size_score(ideal) > scorer.size_score(portrait)
    assert scorer.size_score(unknown) == 0.0
    assert ideal.details["sdiff_raw"] == 0
    assert ideal.details["pre_size_score"] == 0.5


def test_size_preference_is_configurable():
    scorer = ImageScorer(ScoreConfig(size={"ideal_width": 1024, "ideal_height": 768}))

    assert scorer.size_score(_sized("large", 1024, 768)) > scorer.size_score(_sized("ideal", 200, 100))


def test_call_sizing_function_folds_size_into_score():
    scorer = ImageScorer()
    survivors = scorer.consolidate_and_size_rank([
        _sized("http://a.com/large.jpg", 1600, 1200, score=1.0),
        _sized("http://a.com/ideal.jpg", 200, 100, score=0.9),
    ])
    calls = []

    ranked = scorer.call_sizing_function(lambda images, deps, size_phase: calls.append(size_phase), survivors)

    assert calls == [True]
    assert ranked[0].src == "http://a.com/ideal.jpg"
    assert ranked[0].score == 1.0


def test_sizing_hook_can_change_the_winner():
    scorer = ImageScorer()
    survivors = scorer.consolidate_and_size_rank([
        _sized("http://a.com/ideal.jpg", 200, 100, score=1.0),
        _sized("http://a.com/other.jpg", 640, 480, score=0.5),
    ])

    def hook(images, deps, size_phase):
        for image in images:
            if "other" in image.src:
                image.size_score = 10

    ranked = scorer.call_sizing_function(hook, survivors)

    assert ranked[0].src == "http://a.com/other.jpg"


# ---------------------------
# Helpers
# ---------------------------
def test_helpers():
    assert is_valid_src("data:image/gif;base64,R0lGOD") is True
    assert is_valid_src("   ") is False
    assert is_valid_src(None) is False

    assert has_extension("http://a.com/x.JPG", ("jpg",)) is True
    assert has_extension("http://a.com/x.jpg?w=100", ("jpg",)) is False

    assert split_filename("http://a.com/dir/sub/file.png?x=1") == ("/file.png", "/dir/sub")
    assert split_filename("http://image1.jpg") == ("", "")
