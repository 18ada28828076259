from resourcerest.resources.changes import (
    ResourceAdded,
    ResourceChange,
    ResourceMoved,
    ResourceRemoved,
    ResourceUpdated,
    parse_json_changes,
    parse_resource_changes,
    parse_xml_changes,
)
from resourcerest.resources.contract import (
    BodyParser,
    RecordResource,
    Resource,
    is_record_resource,
    parse_body,
)
from resourcerest.resources.memory import InMemoryRecordResource, InMemoryResource
from resourcerest.resources.path import (
    RELATIVE,
    ResourcePath,
    create_path,
    is_absolute,
    is_relative,
    parse_path,
    path_to_string,
    resolve_path,
)
