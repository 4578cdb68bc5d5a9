from pathlib import Path

import pytest

from olt_pipeline.config import AgentConfig, PipelineConfig, load_config


def test_load_config(tmp_path: Path):
    config_path = tmp_path / "olt.yaml"
    config_path.write_text(
        """
pipeline:
  qq_table: 2
  no_action_priority: 400
  pending_group_ttl: 30
  eviction_interval: 0.5
  group_key_namespace: lab-olt
devices:
  - of:0000000000000001
  - of:0000000000000002
"""
    )

    cfg = load_config(config_path)

    assert isinstance(cfg, AgentConfig)
    assert cfg.pipeline.qq_table == 2
    assert cfg.pipeline.no_action_priority == 400
    assert cfg.pipeline.pending_group_ttl == pytest.approx(30.0)
    assert cfg.pipeline.eviction_interval == pytest.approx(0.5)
    assert cfg.pipeline.group_key_namespace == "lab-olt"
    assert cfg.devices == ["of:0000000000000001", "of:0000000000000002"]


def test_load_config_defaults(tmp_path: Path):
    config_path = tmp_path / "olt.yaml"
    config_path.write_text("devices: []\n")

    cfg = load_config(config_path)

    assert cfg.pipeline == PipelineConfig()
    assert cfg.pipeline.qq_table == 1
    assert cfg.pipeline.no_action_priority == 500
    assert cfg.pipeline.pending_group_ttl == pytest.approx(20.0)
    assert cfg.devices == []


@pytest.mark.parametrize(
    "body",
    [
        "- just\n- a list\n",
        "pipeline: [1, 2]\n",
        "devices: of:0000000000000001\n",
        "devices: [a, a]\n",
        "pipeline:\n  pending_group_ttl: 0\n",
        "pipeline:\n  qq_table: -1\n",
        "pipeline:\n  group_key_namespace: ''\n",
    ],
)
def test_load_config_rejects_invalid(tmp_path: Path, body):
    config_path = tmp_path / "olt.yaml"
    config_path.write_text(body)

    with pytest.raises(ValueError):
        load_config(config_path)
