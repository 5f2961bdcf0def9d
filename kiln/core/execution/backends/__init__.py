from .local import LocalBackend
from .docker import DockerBackend
from .dry_run import DryRunBackend

BACKENDS = {
    "local": LocalBackend(),
    "docker": DockerBackend(),
    "dry-run": DryRunBackend(),
}
