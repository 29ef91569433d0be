# kotool

`kotool` is a library for the bookkeeping around building container images
from Go import paths: reading build information from binaries, naming images
after import paths, parsing image references, loading `.ko` build
configuration, finding manifest files, and publishing images through a builder
and publisher that you supply.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Modules

- `kotool.buildinfo` — `parse_build_info(data)` reads the text printed by
  `go version -m` (bytes or str) into a `BuildInfo` holding the main package
  path, the main `Module`, its dependency `Module`s (with any replacement) and
  `BuildSetting` entries. Malformed lines raise `BuildInfoError`, which carries
  the line number.
- `kotool.naming` — `PublishOptions` holds publishing settings;
  `PublishOptions.from_env()` takes the repository from `KO_DOCKER_REPO`.
  `make_namer(options)` returns one of `preserve_import_path`,
  `base_import_paths`, `bare_docker_repo` or, by default, `package_with_md5`,
  which names an image after the last path element plus the MD5 hash of the
  import path.
- `kotool.reference` — `parse_reference(s, insecure=False)` parses a tag or
  digest reference into a `Reference` (with `name`, `identifier` and `scheme`),
  filling in the default registry, `library/` namespace and `latest` tag.
  Invalid references raise `ReferenceError`.
- `kotool.files` — `enumerate_files(FilenameOptions(...))` yields the files
  named, walking directories (recursively with `recursive=True`) for `.json`
  and `.yaml` files; explicitly named files are yielded whatever their
  extension, and `-` is passed through for standard input. With `watch=True`
  the generator keeps yielding manifest files as they change. `SelectorOptions`
  holds a label selector string.
- `kotool.buildopts` — `BuildOptions.load_config()` fills unset options from
  a `.ko.json`, `.ko.yaml` or `.ko.yml` file found in `KO_CONFIG_PATH` or the
  working directory, and from `KO_DEFAULTBASEIMAGE`. It sets the default base
  image (`gcr.io/distroless/static:nonroot` when nothing is configured), base
  image overrides, and the `builds` section, keyed by import path with
  `create_build_config_map`, which finds each package's module from its
  `go.mod`. Problems raise `ConfigError`.
- `kotool.config` — `build_settings(options)` gathers platform, labels, SBOM
  format, job count and creation times into a `BuildSettings`. Also available:
  `default_platform` (falls back to `GOOS`/`GOARCH`/`GOARM`, then
  `linux/amd64`), `parse_platform`, `is_multiplatform`, `select_base_image`,
  `parse_labels`, `get_creation_time` (`SOURCE_DATE_EPOCH`),
  `get_ko_data_creation_time` (`KO_DATA_DATE_EPOCH`), `version` and
  `user_agent`. Bad input raises `SettingsError`.
- `kotool.publishing` — `publish_images(importpaths, publisher, builder)`
  qualifies, checks, builds and publishes each import path through objects
  that satisfy the `Builder` and `Publisher` protocols, returning references
  keyed by qualified import path; failures raise `PublishError`.
  `NopPublisher` computes the digest reference an image would get without
  publishing it. `write_resolved(documents, out)` writes each document
  followed by a `---` separator.

## Example

```python
from kotool.naming import PublishOptions, make_namer

namer = make_namer(PublishOptions(preserve_import_paths=True))
print(namer("registry.example.com/repo", "github.com/example/app/cmd/server"))
# registry.example.com/repo/github.com/example/app/cmd/server
```

## What it does not do

The package has no command-line program. It does not compile Go code, push
images to a registry or a Docker daemon, generate SPDX documents, or run
`kubectl`; building and publishing are done by the `Builder` and `Publisher`
objects passed to `publish_images`.