class ModuleDocFragment(object):

    DOCUMENTATION = r"""
    options:
        portainer_url:
            description:
                - URL of the Portainer instance, without the C(/api) suffix.
                - Falls back to the E(PORTAINER_URL) environment variable.
            required: true
            type: str
        portainer_username:
            description:
                - Username used to get an API token.
                - Falls back to the E(PORTAINER_USER) environment variable.
                - Required together with O(portainer_password).
                - Either O(portainer_username) or O(portainer_token) is required.
            type: str
            aliases: [portainer_user]
        portainer_password:
            description:
                - Password used to get an API token.
                - Falls back to the E(PORTAINER_PASSWORD) environment variable.
            type: str
        portainer_token:
            description:
                - Portainer API token (JWT). When set, no authentication request is made.
                - Falls back to the E(PORTAINER_AUTH_TOKEN) environment variable.
            type: str
        timeout:
            description: Timeout in seconds for each API request
            type: int
            default: 30
        validate_certs:
            description: Validate SSL certificates
            type: bool
            default: true
        ca_path:
            description: Path to a CA bundle used to validate the server certificate
            type: path
    """
