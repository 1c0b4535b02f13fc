# kindtool

Building blocks for tools that run local Kubernetes clusters with containers
as "nodes". It has a typed cluster configuration with defaults, helpers for
picking nodes and running commands on them, a small layer for running
commands that captures their output, file helpers, and the CNI config writer
used by a node networking daemon.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

```
kindtool-version
```

prints the full version line: `kind v0.6.0-alpha`, then the Python version
and the platform. With `-q`/`--quiet` it prints only the semantic version
(`0.6.0-alpha`).

`kindtool.version` also offers `version()`, `display_version()` and
`truncate(s, max_len)`.

## Cluster configuration

`kindtool.config` holds the cluster configuration types (`Cluster`, `Node`,
`Networking`, `Mount`, `PortMapping`, `PatchJSON6902`) and the enums
`NodeRole`, `ClusterIPFamily`, `MountPropagation` and `PortMappingProtocol`.
Each type has a `from_dict` class method. `load_cluster_yaml` parses YAML
text into a `Cluster` without filling in any defaults.

```python
from kindtool.config import load_cluster_yaml, set_defaults_cluster

cluster = load_cluster_yaml("""
kind: Cluster
apiVersion: kind.sigs.k8s.io/v1alpha3
nodes:
- role: control-plane
- role: worker
  extraPortMappings:
  - containerPort: 80
    hostPort: 8080
    protocol: udp
""")
set_defaults_cluster(cluster)
print(cluster.networking.pod_subnet)   # 10.244.0.0/16
```

`set_defaults_cluster` changes the cluster in place. A cluster with no nodes
gets a single control-plane node. Every node without an image gets
`DEFAULT_IMAGE`, and every node without a role becomes a control-plane node.
The IP family defaults to IPv4. The other defaults follow the IP family: an
IPv4 cluster gets `127.0.0.1`, `10.244.0.0/16` and `10.96.0.0/12`, and an
IPv6 cluster gets `::1`, `fd00:10:244::/64` and `fd00:10:96::/112`.

Mount propagation is given by name (`None`, `HostToContainer`,
`Bidirectional`). Port protocols are matched without regard to case (`TCP`,
`UDP`, `SCTP`). An unknown name, or a field of the wrong type, raises
`ValueError`.

## Running commands

`kindtool.exec` runs programs with `subprocess`. A failure raises
`RunError`, which carries the command, its combined output and the
underlying error.

```python
from kindtool.exec import command, output_lines, pretty_command

print(pretty_command("echo", "hello world"))   # echo 'hello world'
lines = output_lines(command("ls", "-1"))
```

A `LocalCmd` is set up with `set_env`, `set_stdin`, `set_stdout` and
`set_stderr`, each of which returns the command so the calls can be
chained. It is then started with `run()`. The standard input can be a file,
`bytes` or `str`.

The module also has these helpers:

- `combined_output_lines` returns the standard output and standard error as
  one list of lines.
- `inherit_output` sends the command's output to this process's streams.
- `run_with_stdout_reader` and `run_with_stdin_writer` connect a function to
  the command through a pipe.
- `run_error_for_error` finds a `RunError` in a chain of causes.

## Nodes

`kindtool.nodeutils` defines the `Node` protocol. A node has
`command(name, *args)`, `role()` and `ip()`, and `str(node)` gives its name.

These functions work on lists of nodes:

- `select_nodes_by_role`
- `control_plane_nodes`, which sorts the nodes by name
- `bootstrap_control_plane_node`
- `secondary_control_plane_nodes`
- `external_load_balancer_node`
- `api_server_endpoint_node`

These functions run commands on a node:

- `kube_version` reads `/kind/version`.
- `write_file` writes text to a path on the node.
- `copy_node_to_node` copies a file from one node to another.
- `load_image_archive` imports an image archive with `ctr`.
- `image_id` asks `crictl` for an image's ID.

Role values and label keys are in `kindtool.constants` (`NodeRoleValue`,
`DEFAULT_CLUSTER_NAME`, `CLUSTER_LABEL_KEY`, `NODE_ROLE_KEY`).

## Errors

`kindtool.errors` provides the following:

- `KindError` records the stack at the point the error is created.
- `new`, `wrap` and `with_stack` create errors. `stack_trace` returns the
  deepest recorded stack in a chain of causes.
- `Aggregate` holds several errors. `new_aggregate` builds a flattened
  aggregate, and `aggregate_errors` returns the errors of the deepest
  aggregate in a chain of causes.
- `until_error_concurrent` runs functions in threads and raises the first
  error any of them raises.
- `aggregate_concurrent` runs functions in threads and waits for all of
  them. It raises a single error as it is, and several errors as an
  aggregate.

## Files

`kindtool.fs` has these helpers:

- `temp_dir` creates a temporary directory. On macOS it returns the
  `/private/var/...` form of the path, which can be mounted into containers.
- `copy` copies a file or a directory tree. It keeps file modes, follows
  symlinks and creates missing parent directories.
- `copy_file` copies a single file and keeps its mode.

## CNI config

`kindtool.cni` renders the node CNI config list from a pod CIDR. An IPv6
CIDR gets the default route `::/0`. Any other CIDR gets `0.0.0.0/0`.

```python
from kindtool.cni import CNIConfigWriter, compute_cni_config_inputs

writer = CNIConfigWriter("/tmp/10-kindnet.conflist")
writer.write(compute_cni_config_inputs("10.244.1.0/24"))
```

The writer first writes to a `.temp` file and then renames it into place.
It does nothing when the inputs are the same as the last ones it wrote.
`render_cni_config` returns the text without writing it. `internal_ip`
picks the `InternalIP` entry from a list of node addresses.

## What it does not do

This package does not create, delete or list clusters, and it does not talk
to a container engine to provision nodes. It has no `Node` implementation of
its own: you supply objects that follow the `Node` protocol. It does not
generate kubeadm configuration, export logs or build node images. It does
not run a networking daemon: the package has no route syncing, no
masquerade rules and no watch loop over nodes, only the CNI config pieces
described above. The only command it installs is `kindtool-version`.