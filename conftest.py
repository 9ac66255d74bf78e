#!/usr/bin/env python3
import os
import tempfile
from pathlib import Path

import pytest

# Set minimal environment variables as early as possible (on import),
# so modules imported during test collection see them.
_base_dir = Path(tempfile.mkdtemp(prefix="test_env_"))
_logs = _base_dir / "logs"
_logs.mkdir(parents=True, exist_ok=True)

os.environ.setdefault("LOG_DIR", str(_logs))
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("LLM_API_KEY", "test-key")
os.environ.setdefault("llm_endpoint", "http://llm.test/v1")

# Explicit content defaults used in tests
os.environ.setdefault("system_prompt", "You are a Kubernetes expert.")
os.environ.setdefault("post_prompt", "")
os.environ.setdefault("error_mesg", "Sorry, something went wrong.")
os.environ.setdefault("no_answer_mesg", "No answer")
os.environ.setdefault("collection_name", "k8s_book")
os.environ.setdefault("METRICS_LOG_TO_STDOUT", "true")


class FakeRedis:
    """In-memory stand-in for the subset of redis.Redis the services use."""

    def __init__(self):
        self.values = {}
        self.lists = {}
        self.ttls = {}

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value, ex=None):
        self.values[key] = value
        if ex is None:
            self.ttls.pop(key, None)
        else:
            self.ttls[key] = ex
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            removed += int(self.values.pop(key, None) is not None)
            removed += int(self.lists.pop(key, None) is not None)
        return removed

    def rpush(self, key, *items):
        self.lists.setdefault(key, []).extend(items)
        return len(self.lists[key])

    def ltrim(self, key, start, end):
        items = self.lists.get(key, [])
        stop = None if end == -1 else end + 1
        self.lists[key] = items[start:stop]
        return True

    def lrange(self, key, start, end):
        items = self.lists.get(key, [])
        stop = None if end == -1 else end + 1
        return items[start:stop]

    def pipeline(self):
        return _FakePipeline(self)


class _FakePipeline:
    def __init__(self, redis):
        self.redis = redis
        self.calls = []

    def __getattr__(self, name):
        def queue(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return queue

    def execute(self):
        return [getattr(self.redis, name)(*args, **kwargs) for name, args, kwargs in self.calls]


@pytest.fixture
def fake_redis():
    return FakeRedis()
