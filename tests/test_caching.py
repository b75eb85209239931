"""Tests for AudioPipeline caching mechanism."""

from unittest.mock import patch

from attractorscope.pipeline import AudioPipeline


def test_pipeline_caching(temp_audio_file, tmp_path, monkeypatch):
    """Test that caching works correctly (miss, hit, bypass)."""
    monkeypatch.setattr(AudioPipeline, "_get_cache_dir", lambda self: tmp_path)

    pipeline = AudioPipeline()

    # 1. First run: analyzes and saves to cache
    with patch.object(pipeline, "analyze", wraps=pipeline.analyze) as mock_analyze:
        result1 = pipeline.process(temp_audio_file)
        assert mock_analyze.called
        assert "manifest" in result1

    cache_files = list(tmp_path.glob("manifest_*.json"))
    assert len(cache_files) == 1

    # 2. Second run: loads from cache
    with patch.object(pipeline, "analyze", wraps=pipeline.analyze) as mock_analyze:
        result2 = pipeline.process(temp_audio_file)
        assert not mock_analyze.called, "Should have used cache"
        assert result2["manifest"] == result1["manifest"]
        assert result2["n_frames"] == result1["n_frames"]

    # 3. use_cache=False re-analyzes
    with patch.object(pipeline, "analyze", wraps=pipeline.analyze) as mock_analyze:
        result3 = pipeline.process(temp_audio_file, use_cache=False)
        assert mock_analyze.called, "Should have re-analyzed"
        assert result3["n_transients"] == result1["n_transients"]


def test_cache_differentiation(temp_audio_file, tmp_path, monkeypatch):
    """Different configurations create different cache files."""
    monkeypatch.setattr(AudioPipeline, "_get_cache_dir", lambda self: tmp_path)

    AudioPipeline().process(temp_audio_file)
    assert len(list(tmp_path.glob("*.json"))) == 1

    AudioPipeline(block_size=512).process(temp_audio_file)
    assert len(list(tmp_path.glob("*.json"))) == 2

    AudioPipeline(precision=6).process(temp_audio_file)
    assert len(list(tmp_path.glob("*.json"))) == 3


def test_corrupt_cache_reanalyzes(temp_audio_file, tmp_path, monkeypatch, caplog):
    monkeypatch.setattr(AudioPipeline, "_get_cache_dir", lambda self: tmp_path)
    pipeline = AudioPipeline()
    pipeline._get_cache_path(temp_audio_file).write_text("{not json")

    result = pipeline.process(temp_audio_file)

    assert result["n_frames"] > 0
    assert "Failed to load cache" in caplog.text


def test_clear_cache(temp_audio_file, tmp_path, monkeypatch):
    cache_dir = tmp_path / "cache"
    cache_dir.mkdir()
    monkeypatch.setattr(AudioPipeline, "_get_cache_dir", lambda self: cache_dir)

    pipeline = AudioPipeline()
    pipeline.process(temp_audio_file)
    assert list(cache_dir.glob("*.json"))

    pipeline.clear_cache()
    assert cache_dir.exists()
    assert not list(cache_dir.glob("*.json"))
