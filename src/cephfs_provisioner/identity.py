import uuid

from cephfs_provisioner.exception import InternalError


class ProvisionerIdentity:
    """Ownership tag of one provisioner instance.

    A new identity is generated each time the provisioner process starts. It is only ever stored as an annotation on
    the volumes this instance creates and is used to decide whether a volume may be reclaimed by this instance. It is
    not a credential.
    """

    __slots__ = ('_value', )

    def __init__(self, value: str) -> None:
        if not isinstance(value, str) or value == '':
            raise InternalError('Provisioner identity must be a non-empty string.')
        self._value = value

    @classmethod
    def generate(cls) -> 'ProvisionerIdentity':
        return cls(str(uuid.uuid4()))

    @property
    def value(self) -> str:
        return self._value

    def matches(self, value: str) -> bool:
        return value == self._value

    def __setattr__(self, name, value):
        if hasattr(self, '_value'):
            raise AttributeError('ProvisionerIdentity is immutable.')
        super().__setattr__(name, value)

    def __eq__(self, other) -> bool:
        if isinstance(other, ProvisionerIdentity):
            return self._value == other._value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return 'ProvisionerIdentity({!r})'.format(self._value)
