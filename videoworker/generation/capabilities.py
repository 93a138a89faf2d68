"""
Video model catalog: what every supported Runware video model accepts.

Plain data only. CapabilityRegistry turns these entries into frozen
ModelCapability values once at startup and checks them.

Provider defaults never include audio flags: audio is opt-in per request
and added by the payload builder.
"""

T2V = "text-to-video"
I2V = "image-to-video"


def _dims(table: dict) -> dict:
    """{'16:9': {'720p': (1280, 720)}} -> {'16:9': {'720p': {'width': 1280, 'height': 720}}}"""
    return {
        ratio: {res: {"width": w, "height": h} for res, (w, h) in by_res.items()}
        for ratio, by_res in table.items()
    }


# ── Generic dimensions (used when a model has no entry of its own) ───────────

GENERIC_DIMENSIONS = _dims({
    "16:9": {"360p": (640, 360), "540p": (960, 540), "720p": (1280, 720), "1080p": (1920, 1080)},
    "9:16": {"360p": (360, 640), "540p": (540, 960), "720p": (720, 1280), "1080p": (1080, 1920)},
    "1:1": {"360p": (360, 360), "540p": (540, 540), "720p": (720, 720), "1080p": (1080, 1080)},
    "4:3": {"360p": (480, 360), "540p": (720, 540), "720p": (960, 720), "1080p": (1440, 1080)},
    "3:4": {"360p": (360, 480), "540p": (540, 720), "720p": (720, 960), "1080p": (1080, 1440)},
})

# Legacy last resort when neither table has the pair.
FALLBACK_DIMENSIONS = {"width": 1248, "height": 704}

# Provider flag that turns on native audio. Never set in provider_defaults.
AUDIO_FIELDS = {
    "bytedance": "audio",
    "google": "generateAudio",
    "lightricks": "generateAudio",
    "pixverse": "audio",
    "klingai": "sound",
    "alibaba": "audio",
}


# ── Shared dimension blocks ──────────────────────────────────────────────────

_VEO_DIMS = _dims({
    "16:9": {"720p": (1280, 720), "1080p": (1920, 1080)},
    "9:16": {"720p": (720, 1280), "1080p": (1080, 1920)},
})

_KLING_1080_DIMS = _dims({
    "16:9": {"1080p": (1920, 1080)},
    "1:1": {"1080p": (1080, 1080)},
    "9:16": {"1080p": (1080, 1920)},
})

_VEO_DEFAULTS = {"google": {"enhancePrompt": True}}  # enhancePrompt cannot be turned off server-side


# ── Catalog ──────────────────────────────────────────────────────────────────

VIDEO_MODEL_CATALOG = [
    {
        "id": "seedance-1.0-pro",
        "label": "Seedance 1.0 Pro",
        "provider_model_id": "bytedance:2@1",
        "durations": [2, 4, 5, 6, 8, 10, 12],
        "aspect_ratios": ["16:9", "9:16", "1:1", "4:3", "3:4", "21:9", "9:21"],
        "resolutions": ["480p", "720p", "1080p"],
        "has_audio": False,
        "is_default": True,
        "frame_support": {"first": True, "last": True},
        "fps": 24,
        "min_prompt_length": 2,
        "max_prompt_length": 3000,
        "provider_defaults": {"bytedance": {"cameraFixed": False}},
        # Seedance uses non-standard sizes
        "dimension_table": _dims({
            "16:9": {"480p": (864, 480), "720p": (1248, 704), "1080p": (1920, 1088)},
            "9:16": {"480p": (480, 864), "720p": (704, 1248), "1080p": (1088, 1920)},
            "1:1": {"480p": (640, 640), "720p": (960, 960), "1080p": (1440, 1440)},
            "4:3": {"480p": (736, 544), "720p": (1120, 832), "1080p": (1664, 1248)},
            "3:4": {"480p": (544, 736), "720p": (832, 1120), "1080p": (1248, 1664)},
            "21:9": {"480p": (960, 416), "720p": (1568, 672), "1080p": (2176, 928)},
            "9:21": {"480p": (416, 960), "720p": (672, 1568), "1080p": (928, 2176)},
        }),
    },
    {
        "id": "seedance-1.5-pro",
        "label": "Seedance 1.5 Pro",
        "provider_model_id": "bytedance:seedance@1.5-pro",
        "durations": [4, 5, 6, 8, 10, 12],
        "aspect_ratios": ["16:9", "9:16", "1:1", "4:3", "3:4", "21:9"],
        "resolutions": ["480p", "720p"],
        "has_audio": True,
        "frame_support": {"first": True, "last": True},
        "fps": 24,
        "min_prompt_length": 2,
        "max_prompt_length": 3000,
        "provider_defaults": {"bytedance": {"cameraFixed": False}},
        "dimension_table": _dims({
            "16:9": {"480p": (864, 496), "720p": (1280, 720)},
            "9:16": {"480p": (496, 864), "720p": (720, 1280)},
            "1:1": {"480p": (640, 640), "720p": (960, 960)},
            "4:3": {"480p": (752, 560), "720p": (1112, 834)},
            "3:4": {"480p": (560, 752), "720p": (834, 1112)},
            "21:9": {"480p": (992, 432), "720p": (1470, 630)},
        }),
    },
    {
        "id": "klingai-2.1-pro",
        "label": "KlingAI 2.1 Pro",
        "provider_model_id": "klingai:5@2",
        "durations": [5, 10],
        "aspect_ratios": ["16:9", "1:1", "9:16"],
        "resolutions": ["1080p"],
        "has_audio": False,
        "frame_support": {"first": True, "last": True},
        "workflows": [I2V],
        "fps": 24,
        "min_prompt_length": 0,
        "max_prompt_length": 0,
        "provider_defaults": {"klingai": {"cfgScale": 0.5}},
        "dimension_table": _KLING_1080_DIMS,
    },
    {
        "id": "klingai-2.5-turbo-pro",
        "label": "KlingAI 2.5 Turbo Pro",
        "provider_model_id": "klingai:6@1",
        "durations": [5, 10],
        "aspect_ratios": ["16:9", "1:1", "9:16"],
        "resolutions": ["720p"],
        "has_audio": False,
        "frame_support": {"first": True, "last": True},
        "fps": 30,
        "min_prompt_length": 2,
        "max_prompt_length": 2500,
        "provider_defaults": {"klingai": {"cfgScale": 0.5}},
        "dimension_table": _dims({
            "16:9": {"720p": (1280, 720)},
            "1:1": {"720p": (720, 720)},
            "9:16": {"720p": (720, 1280)},
        }),
    },
    {
        "id": "kling-video-2.6-pro",
        "label": "Kling VIDEO 2.6 Pro",
        "provider_model_id": "klingai:kling-video@2.6-pro",
        "durations": [5, 10],
        "aspect_ratios": ["16:9", "1:1", "9:16"],
        "resolutions": ["1080p"],
        "has_audio": True,
        "frame_support": {"first": True, "last": False},
        "payload_format": "wrapped",
        "fps": 30,
        "min_prompt_length": 2,
        "max_prompt_length": 2500,
        "provider_defaults": {"klingai": {"cfgScale": 0.5}},
        "dimension_table": _KLING_1080_DIMS,
    },
    {
        "id": "kling-video-o1",
        "label": "Kling VIDEO O1",
        "provider_model_id": "klingai:kling@o1",
        "durations": [5, 10],
        "aspect_ratios": ["16:9", "1:1", "9:16"],
        "resolutions": ["1080p"],
        "has_audio": False,
        "frame_support": {"first": True, "last": True},
        "payload_format": "wrapped",
        "omit_dimensions": True,  # size inferred from the frame image
        "workflows": [T2V, I2V, "reference-to-video", "video-edit"],
        "fps": 30,
        "min_prompt_length": 2,
        "max_prompt_length": 2500,
        "provider_defaults": {"klingai": {"keepOriginalSound": False, "fast": False}},
        "dimension_table": _KLING_1080_DIMS,
    },
    {
        "id": "veo-3.0",
        "label": "Google Veo 3.0",
        "provider_model_id": "google:3@0",
        "durations": [8],
        "aspect_ratios": ["16:9", "9:16"],
        "resolutions": ["720p", "1080p"],
        "has_audio": True,
        "frame_support": {"first": True, "last": False},
        "fps": 24,
        "min_prompt_length": 2,
        "max_prompt_length": 3000,
        "provider_defaults": _VEO_DEFAULTS,
        "dimension_table": _VEO_DIMS,
    },
    {
        "id": "veo-3-fast",
        "label": "Google Veo 3 Fast",
        "provider_model_id": "google:3@1",
        "durations": [8],
        "aspect_ratios": ["16:9", "9:16"],
        "resolutions": ["720p", "1080p"],
        "has_audio": True,
        "frame_support": {"first": True, "last": True},
        "fps": 24,
        "min_prompt_length": 2,
        "max_prompt_length": 3000,
        "provider_defaults": _VEO_DEFAULTS,
        "dimension_table": _VEO_DIMS,
    },
    {
        "id": "veo-3.1",
        "label": "Google Veo 3.1",
        "provider_model_id": "google:3@2",
        "durations": [8],
        "aspect_ratios": ["16:9", "9:16"],
        "resolutions": ["720p", "1080p"],
        "has_audio": True,
        "frame_support": {"first": True, "last": True},
        "fps": 24,
        "min_prompt_length": 2,
        "max_prompt_length": 3000,
        "provider_defaults": _VEO_DEFAULTS,
        "dimension_table": _VEO_DIMS,
    },
    {
        "id": "veo-3.1-fast",
        "label": "Google Veo 3.1 Fast",
        "provider_model_id": "google:3@3",
        "durations": [8],
        "aspect_ratios": ["16:9", "9:16"],
        "resolutions": ["720p", "1080p"],
        "has_audio": True,
        "frame_support": {"first": True, "last": True},
        "fps": 24,
        "min_prompt_length": 2,
        "max_prompt_length": 3000,
        "provider_defaults": _VEO_DEFAULTS,
        "dimension_table": _VEO_DIMS,
    },
    {
        "id": "pixverse-v5.5",
        "label": "PixVerse v5.5",
        "provider_model_id": "pixverse:1@6",
        "durations": [5, 8, 10],  # 10s unavailable at 1080p on the provider side
        "aspect_ratios": ["16:9", "4:3", "1:1", "3:4", "9:16"],
        "resolutions": ["360p", "540p", "720p", "1080p"],
        "has_audio": True,
        "frame_support": {"first": True, "last": True},
        "fps": 24,
        "min_prompt_length": 2,
        "max_prompt_length": 2048,
        "provider_defaults": {"pixverse": {"style": "realistic", "multiClip": False, "thinking": "auto"}},
        # standard sizes, served by the generic table
    },
    {
        "id": "hailuo-2.3",
        "label": "MiniMax Hailuo 2.3",
        "provider_model_id": "minimax:4@1",
        "durations": [6, 10],  # 1080p is 6s only on the provider side
        "aspect_ratios": ["16:9"],
        "resolutions": ["768p", "1080p"],
        "has_audio": False,
        "frame_support": {"first": True, "last": False},
        "fps": 25,
        "min_prompt_length": 2,
        "max_prompt_length": 2000,
        "provider_defaults": {"minimax": {"promptOptimizer": True}},
        "dimension_table": _dims({
            "16:9": {"768p": (1366, 768), "1080p": (1920, 1080)},
        }),
    },
    {
        "id": "sora-2-pro",
        "label": "Sora 2 Pro",
        "provider_model_id": "openai:3@2",
        "durations": [4, 8, 12],
        "aspect_ratios": ["16:9", "9:16", "7:4", "4:7"],
        "resolutions": ["720p"],
        "has_audio": False,
        "frame_support": {"first": True, "last": False},
        "fps": 30,
        "min_prompt_length": 1,
        "max_prompt_length": 4000,
        "dimension_table": _dims({
            "16:9": {"720p": (1280, 720)},
            "9:16": {"720p": (720, 1280)},
            "7:4": {"720p": (1792, 1024)},
            "4:7": {"720p": (1024, 1792)},
        }),
    },
    {
        "id": "ltx-2-pro",
        "label": "LTX-2 Pro",
        "provider_model_id": "lightricks:2@0",
        "durations": [6, 8, 10],
        "aspect_ratios": ["16:9"],
        "resolutions": ["1080p", "1440p", "2160p"],
        "has_audio": True,
        "frame_support": {"first": True, "last": False},
        "fps": 25,
        "min_prompt_length": 2,
        "max_prompt_length": 10000,
        "provider_defaults": {"lightricks": {"fps": 25}},
        "dimension_table": _dims({
            "16:9": {"1080p": (1920, 1080), "1440p": (2560, 1440), "2160p": (3840, 2160)},
        }),
    },
    {
        "id": "runway-gen4-turbo",
        "label": "Runway Gen-4 Turbo",
        "provider_model_id": "runway:1@1",
        "durations": [2, 3, 4, 5, 6, 7, 8, 9, 10],
        "aspect_ratios": ["16:9", "9:16", "1:1", "21:9", "4:3"],
        "resolutions": ["672p", "720p", "832p", "960p"],
        "has_audio": False,
        "frame_support": {"first": True, "last": False},
        "payload_format": "wrapped",
        "workflows": [I2V],
        "fps": 24,
        "min_prompt_length": 1,
        "max_prompt_length": 1000,
        "provider_defaults": {"runway": {"contentModeration": {"publicFigureThreshold": 0.5}}},
        "dimension_table": _dims({
            "16:9": {"720p": (1280, 720)},
            "9:16": {"720p": (720, 1280)},
            "1:1": {"960p": (960, 960)},
            "21:9": {"672p": (1584, 672)},
            "4:3": {"832p": (1104, 832)},
        }),
    },
    {
        "id": "alibaba-wan-2.6",
        "label": "Alibaba Wan 2.6",
        "provider_model_id": "alibaba:wan@2.6",
        "durations": [5, 10, 15],
        "aspect_ratios": ["16:9", "9:16", "1:1", "17:13", "13:17"],
        "resolutions": ["720p", "1080p"],
        "has_audio": True,
        "frame_support": {"first": True, "last": False},
        "payload_format": "wrapped",
        "workflows": [T2V, I2V, "reference-to-video"],
        "fps": 24,
        "min_prompt_length": 1,
        "max_prompt_length": 1500,
        "provider_defaults": {"alibaba": {"promptExtend": True, "shotType": "single"}},
        "dimension_table": _dims({
            "16:9": {"720p": (1280, 720), "1080p": (1920, 1080)},
            "9:16": {"720p": (720, 1280), "1080p": (1080, 1920)},
            "1:1": {"720p": (960, 960), "1080p": (1440, 1440)},
            "17:13": {"720p": (1088, 832), "1080p": (1632, 1248)},
            "13:17": {"720p": (832, 1088), "1080p": (1248, 1632)},
        }),
    },
]
