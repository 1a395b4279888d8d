"""
Value objects passed into the vfat driver.
"""

from dataclasses import dataclass

from fatvol.utils.validators import validate_owner_id, validate_permission_mask


@dataclass(frozen=True)
class MountPolicy:
    """
    How a vfat volume gets mounted.

    A fresh policy is built for every mount call; instances are frozen so
    one can never be shared and mutated between calls.
    """

    read_only: bool = False
    remount: bool = False
    executable: bool = False
    owner_uid: int = 0
    owner_gid: int = 0
    # Applies to both files (fmask) and directories (dmask)
    permission_mask: int = 0o007
    create_lost_dir: bool = True

    def __post_init__(self):
        if not validate_owner_id(self.owner_uid):
            raise ValueError(f"Invalid owner uid: {self.owner_uid}")
        if not validate_owner_id(self.owner_gid):
            raise ValueError(f"Invalid owner gid: {self.owner_gid}")
        if not validate_permission_mask(self.permission_mask):
            raise ValueError(f"Invalid permission mask: {self.permission_mask!r}")

    def __repr__(self):
        return (
            f"<MountPolicy("
            f"read_only={self.read_only}, "
            f"remount={self.remount}, "
            f"executable={self.executable}, "
            f"uid={self.owner_uid}, "
            f"gid={self.owner_gid}, "
            f"mask={self.permission_mask:04o}, "
            f"create_lost_dir={self.create_lost_dir})>"
        )
