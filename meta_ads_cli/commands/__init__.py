from . import (
    accounts,
    adcreatives,
    adimages,
    ads,
    adsets,
    advideos,
    auth,
    bulk,
    campaigns,
    config_cmd,
    insights,
    schema,
)
from .base import CommandContext, run_command

# Registration order is the order shown in --help
COMMAND_MODULES = (
    auth,
    config_cmd,
    accounts,
    campaigns,
    adsets,
    ads,
    adcreatives,
    adimages,
    advideos,
    insights,
    bulk,
    schema,
)

__all__ = ["COMMAND_MODULES", "CommandContext", "run_command"]
