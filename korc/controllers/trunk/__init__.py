"""
The trunks: network ports carrying the traffic of other ports (subports).
"""
from korc.controllers.trunk.actuator import TrunkActuator, TrunkActuatorFactory
from korc.controllers.trunk.controller import DependencyEventOutcome, TrunkController, setup
from korc.controllers.trunk.dependencies import CONTROLLER_NAME, KIND, TrunkDependencies, \
                                                new_dependencies
from korc.controllers.trunk.remote import Subport, Trunk, TrunkClient, TrunkScope
from korc.controllers.trunk.status import TrunkStatusWriter

__all__ = [
    'CONTROLLER_NAME',
    'KIND',
    'DependencyEventOutcome',
    'Subport',
    'Trunk',
    'TrunkActuator',
    'TrunkActuatorFactory',
    'TrunkClient',
    'TrunkController',
    'TrunkDependencies',
    'TrunkScope',
    'TrunkStatusWriter',
    'new_dependencies',
    'setup',
]
