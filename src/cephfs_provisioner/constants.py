# Annotation carrying the identity of the provisioner instance that created a volume. The same key is used when
# writing and when reading the annotation.
ANNOTATION_PROVISIONER_IDENTITY = 'cephFSProvisionerIdentity'

# Standard Kubernetes annotations
ANNOTATION_PROVISIONED_BY = 'pv.kubernetes.io/provisioned-by'
ANNOTATION_STORAGE_CLASS_LEGACY = 'volume.beta.kubernetes.io/storage-class'

DEFAULT_PROVISIONER_NAME = 'kubernetes.io/cephfs'

# Resource name used for the capacity
RESOURCE_STORAGE = 'storage'

RECLAIM_POLICY_DELETE = 'Delete'
RECLAIM_POLICY_RETAIN = 'Retain'
RECLAIM_POLICY_RECYCLE = 'Recycle'
RECLAIM_POLICIES = (RECLAIM_POLICY_DELETE, RECLAIM_POLICY_RETAIN, RECLAIM_POLICY_RECYCLE)

ACCESS_MODES = ('ReadWriteOnce', 'ReadOnlyMany', 'ReadWriteMany', 'ReadWriteOncePod')

VOLUME_PHASE_RELEASED = 'Released'

PV_NAME_PREFIX = 'pvc-'

# Event types and reasons
EVENT_TYPE_NORMAL = 'Normal'
EVENT_TYPE_WARNING = 'Warning'
EVENT_REASON_PROVISIONING_SUCCEEDED = 'ProvisioningSucceeded'
EVENT_REASON_PROVISIONING_FAILED = 'ProvisioningFailed'
EVENT_REASON_VOLUME_FAILED_DELETE = 'VolumeFailedDelete'
EVENT_REPORTING_COMPONENT = 'cephfs-provisioner'
