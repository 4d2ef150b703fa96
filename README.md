# cstorcsi

Building blocks for a CSI driver that serves cStor volumes: typed resource
objects, fluent builders that collect errors until `build()`, list filtering
with predicates, and the validation rules a controller applies to incoming
requests.

## Installation

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `cstorcsi.config` – the driver `Config` dataclass and `default()`, which
  returns an empty one.
- `cstorcsi.apis` – resource types (`CStorVolume`, `CStorVolumeAttachment`,
  `CStorVolumeConfig` and their parts), `CStorVolumePhase`,
  `CStorVolumeAttachmentStatus`, `Quantity` / `parse_quantity` for amounts
  such as `5G` or `1Gi`, `to_dict` for camelCase JSON-ready data, `BuildError`,
  and volume list filtering (`Volume`, `VolumeListBuilder`, `is_healthy`).
- `cstorcsi.volume` – `Builder` for `CStorVolume` objects.
- `cstorcsi.volumeattachment` – `Builder`, `build_from`, the `Attachment`
  wrapper, `ListBuilder`, `list_builder_from` and the `has_label` /
  `has_labels` / `is_nil` predicates.
- `cstorcsi.volumeconfig` – `Builder`, `build_from`, the `VolumeConfig`
  wrapper, `ListBuilder`, `cvc_key` (`namespace/name`) and
  `create_merge_patch`, which returns a JSON merge patch as bytes.
- `cstorcsi.validation` – `StatusCode` and `CSIError`, `AccessMode`,
  `ControllerCapability`, `VolumeCapability`, `CreateVolumeRequest`,
  `controller_capabilities`, `validate_request`,
  `validate_create_volume_request`, `validate_delete_volume_request`,
  `is_valid_fs_type` (ext4 and xfs), `is_block_device`, `volume_condition`,
  `volume_capacity`, and `TransitionList`, a thread-safe record of volumes
  with an operation in progress (`track()` is a context manager).
- `cstorcsi.controller` – `Node`, `TopologyRequirement`, `select_node`,
  `accessibility_node`, `snapshot_id` / `split_snapshot_id` (`volume@name`)
  and `volume_context`.

## Example

```python
from cstorcsi import volumeattachment
from cstorcsi.apis import BuildError

attachment = (
    volumeattachment.Builder()
    .with_name("pvc-1-node1")
    .with_labels({"nodeID": "node1", "Volname": "pvc-1"})
    .with_vol_name("pvc-1")
    .with_access_type("mount")
    .with_fs_type("ext4")
    .with_read_only(False)
    .build()
)

try:
    volumeattachment.Builder().with_name("").build()
except BuildError as exc:
    print(exc)  # [failed to build csi volume object: missing name]
```

Builders never raise from their `with_*` methods; every problem is recorded
and reported together when `build()` is called.

## What this package does not do

It has no command to run and no gRPC server; it does not talk to a cluster
API, an iSCSI target or the kernel. It does not mount, format, attach or
resize volumes, and it carries no node-side service logic. It supplies the
objects, checks and pure helpers that such a driver is built from.