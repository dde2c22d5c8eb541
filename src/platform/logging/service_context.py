"""
Service context extraction for distributed logging.

Identifies the running service instance so log lines from several API
workers and the pending-sync reconciler can be told apart.
"""

import os
from functools import lru_cache


@lru_cache(maxsize=1)
def get_service_context() -> str:
    service_name = os.getenv('SERVICE_NAME', 'trip-booking')
    deploy_env = os.getenv('DEPLOY_ENV', 'local_dev')

    # Container hostname in Kubernetes/ECS, PID locally
    instance_id = os.getenv('HOSTNAME', '')[:12] or str(os.getpid())

    return f'{service_name}@{deploy_env}:{instance_id}'
