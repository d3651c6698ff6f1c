"""
Market provisioning: run context, step plans, pipeline driver and oracle
delegation.
"""

from perp_launcher.provisioning.context import ProvisioningContext
from perp_launcher.provisioning.pipeline import PipelineDriver, PipelineResult

__all__ = ["ProvisioningContext", "PipelineDriver", "PipelineResult"]
