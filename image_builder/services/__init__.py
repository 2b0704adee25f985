from .cleanup_guard import CleanupGuard as CleanupGuard
from .cluster_member_selector import ClusterMemberSelector as ClusterMemberSelector
from .command_executor import CommandExecutor as CommandExecutor
from .file_deployer import FileDeployer as FileDeployer
from .image_publisher import ImagePublisher as ImagePublisher
from .instance_lifecycle import InstanceLifecycleManager as InstanceLifecycleManager
from .provisioner import Provisioner as Provisioner
