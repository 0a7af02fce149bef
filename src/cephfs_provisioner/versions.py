from collections import namedtuple

import semantic_version

_VersionsTuple = namedtuple('_VersionsTuple', ['configuration'])
_VersionSpecPair = namedtuple('_VersionSpecPair', ['current', 'supported'])

# Configuration versions only use the major version part
VERSIONS = _VersionsTuple(configuration=_VersionSpecPair(current=semantic_version.Version('1.0.0'),
                                                         supported=semantic_version.SimpleSpec('>=1,<2')))
