"""
Portainer API Field Reference
Collected from API responses of the endpoints used by the stack utilities.

Use this as the source of truth for field names.
"""


class PortainerFields:
    """Verified field names from Portainer API requests and responses"""

    # Authentication
    AUTH_USERNAME = "Username"
    AUTH_PASSWORD = "Password"
    AUTH_JWT = "jwt"

    # Error envelope
    ERROR_MESSAGE_KEYS = ("message", "Err", "err")
    ERROR_DETAILS_KEYS = ("details", "Details")

    # Status
    STATUS_AUTHENTICATION = "Authentication"
    STATUS_ENDPOINT_MANAGEMENT = "EndpointManagement"
    STATUS_ANALYTICS = "Analytics"
    STATUS_VERSION = "Version"

    # Endpoint Groups
    GROUP_ID = "Id"
    GROUP_NAME = "Name"
    GROUP_DESCRIPTION = "Description"

    # Endpoints
    ENDPOINT_ID = "Id"
    ENDPOINT_NAME = "Name"
    ENDPOINT_TYPE = "Type"
    ENDPOINT_URL = "URL"
    ENDPOINT_PUBLIC_URL = "PublicURL"
    ENDPOINT_GROUP_ID = "GroupId"

    # Docker info (endpoints/{id}/docker/info)
    DOCKER_INFO_SWARM_CLUSTER_ID = "Swarm.Cluster.ID"

    # Resource control decoration added by Portainer to proxied Docker responses
    DOCKER_RESOURCE_CONTROL = "Portainer.ResourceControl"

    # Stacks
    STACK_ID = "Id"
    STACK_NAME = "Name"
    STACK_TYPE = "Type"
    STACK_TYPE_NAME = "TypeName"
    STACK_ENDPOINT_ID = "EndpointId"
    STACK_ENDPOINT_ID_QUERY = "endpointId"
    STACK_SWARM_ID = "SwarmId"
    STACK_SWARM_ID_CREATE = "SwarmID"
    STACK_ENTRY_POINT = "EntryPoint"
    STACK_ENV = "Env"
    STACK_ENV_NAME = "name"
    STACK_ENV_VALUE = "value"
    STACK_PRUNE = "Prune"
    STACK_FILE_CONTENT = "StackFileContent"
    STACK_RESOURCE_CONTROL = "ResourceControl"
    STACK_FILTERS_QUERY = "filters"
    STACK_TYPE_QUERY = "type"
    STACK_METHOD_QUERY = "method"
    STACK_METHOD_STRING = "string"

    # Resource controls
    RC_ID = "Id"
    RC_RESOURCE_ID = "ResourceId"
    RC_RESOURCE_ID_CREATE = "ResourceID"
    RC_SUB_RESOURCE_IDS = "SubResourceIDs"
    RC_TYPE = "Type"
    RC_PUBLIC = "Public"
    RC_ADMINISTRATORS_ONLY = "AdministratorsOnly"
    RC_USERS = "Users"
    RC_TEAMS = "Teams"
    RC_USER_ACCESSES = "UserAccesses"
    RC_TEAM_ACCESSES = "TeamAccesses"
    RC_USER_ID = "UserId"
    RC_TEAM_ID = "TeamId"

    # Users
    USER_ID = "Id"
    USER_USERNAME = "Username"
    USER_ROLE = "Role"
