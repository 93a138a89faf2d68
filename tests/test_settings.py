from videoworker.generation.settings import resolve_video_settings


def test_defaults_when_nothing_set(registry):
    s = resolve_video_settings({}, {}, {}, registry)
    assert s.model_id == "seedance-1.0-pro"
    assert s.resolution == "720p"
    assert s.aspect_ratio == "16:9"


def test_shot_overrides_scene_and_video(registry):
    s = resolve_video_settings(
        {"video_model": "veo-3.1", "video_resolution": "1080p"},
        {"video_model": "sora-2-pro", "video_resolution": "720p"},
        {"video_model": "ltx-2-pro", "video_resolution": "2160p", "aspect_ratio": "9:16"},
        registry,
    )
    assert (s.model_id, s.resolution, s.aspect_ratio) == ("veo-3.1", "1080p", "9:16")


def test_scene_used_when_shot_empty(registry):
    s = resolve_video_settings(
        {"video_model": None, "video_resolution": None},
        {"video_model": "sora-2-pro"},
        {"video_model": "ltx-2-pro", "video_resolution": "1080p"},
        registry,
    )
    assert s.model_id == "sora-2-pro"
    assert s.resolution == "1080p"


def test_model_given_as_mapping(registry):
    s = resolve_video_settings({"video_model": {"id": "veo-3.1"}}, None, None, registry)
    assert s.model_id == "veo-3.1"
    s = resolve_video_settings({}, {"video_model": {"name": "hailuo-2.3"}}, None, registry)
    assert s.model_id == "hailuo-2.3"


def test_aspect_ratio_only_from_video_level(registry):
    s = resolve_video_settings({"aspect_ratio": "1:1"}, {"aspect_ratio": "1:1"}, {}, registry)
    assert s.aspect_ratio == "16:9"


def test_explicit_defaults(registry):
    s = resolve_video_settings({}, {}, {}, registry, default_model="veo-3-fast", default_resolution="1080p")
    assert (s.model_id, s.resolution) == ("veo-3-fast", "1080p")
