from .build import BuildResult as BuildResult
from .build import BuildState as BuildState
from .cluster_member import ClusterMember as ClusterMember
from .command import Command as Command
from .command import CommandExecution as CommandExecution
from .command import TimeoutClass as TimeoutClass
from .exceptions import (APIError, BuildInterrupted, CleanupError, CommandFailedError, ConfigurationError, ImageBuilderError,
                         InstanceNotReadyError, NoEligibleTargetError, NotFoundError, OperationFailedError,
                         OperationTimeoutError, PublishVerificationError, TransportError)
from .image import Image as Image
from .instance import Instance as Instance
from .manifest import CommandStep, FileStep, ProvisioningManifest
from .operation import Operation as Operation
