# Importing the package registers the built-in page drivers
from . import searchfunder  # noqa: F401
