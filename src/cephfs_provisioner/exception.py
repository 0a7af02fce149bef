#!/usr/bin/env python
# -*- encoding: utf-8 -*-


class ProvisionerException(Exception):
    pass


class UsageError(ProvisionerException, RuntimeError):
    pass


class InputDataError(ProvisionerException, RuntimeError):
    pass


class InternalError(ProvisionerException, RuntimeError):
    pass


class ConfigurationError(ProvisionerException, RuntimeError):
    pass


class ValidationError(ProvisionerException, ValueError):
    pass


class AllocationError(ProvisionerException, IOError):
    pass


class ReclaimError(ProvisionerException, IOError):
    pass


class MissingIdentityError(ProvisionerException, RuntimeError):
    pass


# Raised by a provisioner when a volume belongs to somebody else. The controller must neither retry nor
# count it as a failure.
class IgnoredError(ProvisionerException):
    pass
