# Codec package for ovalmodel
"""
Document reader and writer.

The reader drives get-or-create calls on a DefinitionModel while walking a
source document. The writer walks the registries to build a document.
"""
