# ovalmodel
# In-memory object model for OVAL definition documents

"""
Core invariant: exactly one entity instance exists per identifier in each
of a model's five registries, no matter in which order a document names
or defines them.

Typical flow:
    model = import_model("definitions.xml")
    model.merge("more-definitions.xml")
    model.bind_variable_model(VariableModel.import_file("variables.xml"))
    model.lock()
    model.export("canonical.xml")
"""

from .model import DefinitionModel, import_model
from .variables import VariableModel

__all__ = ["DefinitionModel", "VariableModel", "import_model"]
