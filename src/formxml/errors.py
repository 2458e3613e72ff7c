"""Exceptions raised by the formxml package."""


class FormXmlError(Exception):
    """Base class for formxml failures that are not document problems."""


class SchemaLoadError(FormXmlError):
    """A bundled schema resource is missing, malformed or does not compile.

    This is a configuration fault: the schema set cannot be built and no
    validation can take place until the packaged resources are fixed.
    """
