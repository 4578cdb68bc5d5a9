"""oslo.config options for the OLT pipeliner.

Controllers configured through oslo.config register these options and build
the per-device :class:`~olt_pipeline.config.PipelineConfig` from them.
"""

from oslo_config import cfg

from olt_pipeline.config import (
    DEFAULT_EVICTION_INTERVAL,
    DEFAULT_KEY_NAMESPACE,
    PipelineConfig,
)
from olt_pipeline.pending import DEFAULT_TTL
from olt_pipeline.translators import DEFAULT_NO_ACTION_PRIORITY, DEFAULT_QQ_TABLE

olt_opts = [
    cfg.IntOpt('olt_qq_table',
               default=DEFAULT_QQ_TABLE,
               min=0,
               help='Table holding the QinQ (S-tag) stage of the OLT pipeline.'),
    cfg.IntOpt('olt_no_action_priority',
               default=DEFAULT_NO_ACTION_PRIORITY,
               min=0,
               help='Priority of the drop rule installed with "any vlan" '
                    'upstream rules.'),
    cfg.FloatOpt('olt_pending_group_ttl',
                 default=DEFAULT_TTL,
                 help='Seconds a group request may stay unconfirmed before '
                      'the next objective fails.'),
    cfg.FloatOpt('olt_eviction_interval',
                 default=DEFAULT_EVICTION_INTERVAL,
                 help='Seconds between sweeps of expired group requests.'),
    cfg.StrOpt('olt_group_key_namespace',
               default=DEFAULT_KEY_NAMESPACE,
               help='Prefix of the group correlation keys.'),
]


def register_olt_opts(conf=None):
    """Register OLT pipeliner options on ``conf`` (``cfg.CONF`` by default).

    Options go to the DEFAULT group alongside the rest of the driver options.
    """
    conf = cfg.CONF if conf is None else conf
    conf.register_opts(olt_opts)
    return conf


def pipeline_config_from_conf(conf=None):
    """Build a PipelineConfig from registered oslo.config options.

    Raises:
        ValueError: if the configured values are out of range.
    """
    conf = cfg.CONF if conf is None else conf
    return PipelineConfig(
        qq_table=conf.olt_qq_table,
        no_action_priority=conf.olt_no_action_priority,
        pending_group_ttl=conf.olt_pending_group_ttl,
        eviction_interval=conf.olt_eviction_interval,
        group_key_namespace=conf.olt_group_key_namespace,
    )
