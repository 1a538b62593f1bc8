"""
Module-level configuration for the OVAL definition model.

Nothing here is read from the environment. Callers that need a different
schema location pass it to DefinitionModel explicitly.
"""

# =============================================================================
# NAMESPACES
# =============================================================================

OVAL_COMMON_NAMESPACE = "http://oval.mitre.org/XMLSchema/oval-common-5"
OVAL_DEFINITIONS_NAMESPACE = "http://oval.mitre.org/XMLSchema/oval-definitions-5"
OVAL_VARIABLES_NAMESPACE = "http://oval.mitre.org/XMLSchema/oval-variables-5"
XMLNS_XSI = "http://www.w3.org/2001/XMLSchema-instance"

XSI_SCHEMA_LOCATION = f"{{{XMLNS_XSI}}}schemaLocation"


# =============================================================================
# SCHEMA & GENERATOR
# =============================================================================

DEFAULT_SCHEMA_LOCATION = (
    "http://oval.mitre.org/XMLSchema/oval-definitions-5 oval-definitions-schema.xsd "
    "http://oval.mitre.org/XMLSchema/oval-definitions-5#independent independent-definitions-schema.xsd "
    "http://oval.mitre.org/XMLSchema/oval-definitions-5#unix unix-definitions-schema.xsd "
    "http://oval.mitre.org/XMLSchema/oval-definitions-5#linux linux-definitions-schema.xsd "
    "http://oval.mitre.org/XMLSchema/oval-common-5 oval-common-schema.xsd"
)

GENERATOR_PRODUCT_NAME = "ovalmodel"
GENERATOR_SCHEMA_VERSION = "5.5"
GENERATOR_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"

EXPORT_ENCODING = "UTF-8"


# =============================================================================
# REFERENCE MARKERS INSIDE OPAQUE CONTENT
# =============================================================================

# Attributes whose value names another entity
VARIABLE_REF_ATTRIBUTE = "var_ref"
OBJECT_REF_ATTRIBUTE = "object_ref"

# Elements whose text names another entity (local names)
VARIABLE_REF_ELEMENT = "var_ref"
STATE_REF_ELEMENT = "filter"
OBJECT_REF_ELEMENT = "object_reference"


# =============================================================================
# EXPORT PREFIXES
# =============================================================================

# Prefix for the definitions namespace in embedded output. Standalone
# documents bind it as the default namespace instead.
OVAL_DEFINITIONS_PREFIX = "oval-def"

# Platform family namespaces get readable prefixes instead of ns0, ns1, ...
FAMILY_NAMESPACE_PREFIXES = {
    "ind-def": "http://oval.mitre.org/XMLSchema/oval-definitions-5#independent",
    "unix-def": "http://oval.mitre.org/XMLSchema/oval-definitions-5#unix",
    "linux-def": "http://oval.mitre.org/XMLSchema/oval-definitions-5#linux",
    "win-def": "http://oval.mitre.org/XMLSchema/oval-definitions-5#windows",
}
