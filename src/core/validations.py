import re

# Validates a username with alphanumeric characters, underscore, dash, and dot
# Example: "john.doe_2023"
USERNAME_VALIDATOR = re.compile(r"^[a-zA-Z0-9_\-.]{3,60}$")
