"""
Tests for the validate and mutate halves of the admission pipeline
"""

# Standard
import copy
import json

# Third Party
import pytest

# Local
from myapp_operator import admission, constants
from myapp_operator.test_helpers.helpers import library_config, setup_cr

MANAGED_BY_PATH = "/metadata/labels/app.kubernetes.io~1managed-by"

## image_tag ###################################################################


@pytest.mark.parametrize(
    ["image", "tag"],
    [
        ("nginx:1.25", "1.25"),
        ("app:latest", "latest"),
        ("registry.local:5000/team/app:1.0.0", "1.0.0"),
        ("registry.local:5000/team/app", None),
        ("nginx", None),
        ("nginx:", None),
        (":1.0", None),
    ],
)
def test_image_tag(image, tag):
    """Make sure the tag is only found after the last ':' outside the registry"""
    assert admission.image_tag(image) == tag


## validate ####################################################################


@pytest.mark.parametrize(
    ["spec_overrides", "reason"],
    [
        ({"replicas": 0}, "replicas must be between 1 and 100"),
        ({"replicas": 101}, "replicas must be between 1 and 100"),
        ({"replicas": -3}, "replicas must be between 1 and 100"),
        ({"replicas": "3"}, "replicas must be an integer"),
        ({"replicas": True}, "replicas must be an integer"),
        ({"replicas": None}, "replicas must be an integer"),
        ({"image": ""}, "image cannot be empty"),
        ({"image": None}, "image cannot be empty"),
        ({"image": "app:latest"}, "Image tag 'latest' is not allowed"),
        ({"image": "app"}, "image must be of the form name:tag"),
        ({"image": "host:5000/app"}, "image must be of the form name:tag"),
        ({"envVars": {"A": 1}}, "envVars must map strings to strings"),
        ({"envVars": ["A=1"]}, "envVars must map strings to strings"),
        ({"resources": {"cpu": "1"}}, "resources must specify cpu and memory"),
    ],
)
def test_validate_rejects(spec_overrides, reason):
    """Make sure each invalid spec is rejected with its specific reason"""
    cr = setup_cr()
    cr["spec"].update(spec_overrides)
    verdict = admission.validate(cr)
    assert not verdict.allowed
    assert verdict.reason == reason


@pytest.mark.parametrize(
    "spec_overrides",
    [
        {"replicas": 1},
        {"replicas": 100},
        {"image": "app:1.0.0"},
        {"image": "registry.local:5000/app:v2"},
        {"image": "app:latest-rc1"},
        {"envVars": {"LOG_LEVEL": "debug"}},
        {"resources": {"cpu": "1", "memory": "1Gi"}},
        {"scheduling": {"nodeSelector": {"disk": "ssd"}}},
    ],
)
def test_validate_accepts(spec_overrides):
    """Make sure valid specs are allowed with no reason"""
    cr = setup_cr()
    cr["spec"].update(spec_overrides)
    verdict = admission.validate(cr)
    assert verdict.allowed
    assert verdict.reason is None


def test_validate_first_failure_wins():
    """Make sure the replica rule is reported before the image rule"""
    cr = setup_cr(replicas=0, image="")
    assert admission.validate(cr).reason == "replicas must be between 1 and 100"


def test_validate_missing_spec():
    """Make sure an object without a spec is rejected rather than crashing"""
    assert not admission.validate({"metadata": {"name": "x"}}).allowed


@pytest.mark.parametrize(
    ["section", "value", "reason"],
    [
        ("spec", "replicas=3", "spec must be an object"),
        ("spec", ["replicas"], "spec must be an object"),
        ("metadata", "demo", "metadata must be an object"),
    ],
)
def test_validate_malformed_sections(section, value, reason):
    """Make sure sections that are not objects are denied with a reason"""
    cr = setup_cr()
    cr[section] = value
    verdict = admission.validate(cr)
    assert not verdict.allowed
    assert verdict.reason == reason


def test_validate_spec_not_a_mapping():
    assert admission.validate_spec("replicas=3") == "spec must be an object"


## mutate ######################################################################


@pytest.mark.parametrize(
    ["path", "value", "reason"],
    [
        (("spec",), "replicas=3", "spec must be an object"),
        (("metadata",), "demo", "metadata must be an object"),
        (("metadata", "labels"), "a=b", "metadata.labels must be an object"),
    ],
)
def test_mutate_malformed_sections(path, value, reason):
    """Make sure no patch is computed for sections that are not objects"""
    cr = setup_cr()
    parent = cr
    for key in path[:-1]:
        parent = parent[key]
    parent[path[-1]] = value
    with pytest.raises(ValueError, match=reason):
        admission.mutate(cr, controller_name="ctrl")


def test_mutate_no_labels_no_resources():
    """Make sure the labels map and default resources are added"""
    patch = admission.mutate(setup_cr(), controller_name="ctrl")
    assert patch == [
        {"op": "add", "path": "/metadata/labels", "value": {}},
        {"op": "add", "path": MANAGED_BY_PATH, "value": "ctrl"},
        {
            "op": "add",
            "path": "/spec/resources",
            "value": {"cpu": "100m", "memory": "128Mi"},
        },
    ]


def test_mutate_existing_labels_and_resources():
    """Make sure only the managed-by label is written when the rest is set"""
    cr = setup_cr(resources={"cpu": "1", "memory": "1Gi"})
    cr["metadata"]["labels"] = {"team": "a"}
    patch = admission.mutate(cr, controller_name="ctrl")
    assert patch == [{"op": "add", "path": MANAGED_BY_PATH, "value": "ctrl"}]


def test_mutate_defaults_from_config():
    """Make sure the controller name and resources come from config by default"""
    with library_config(
        controller_name="from-config",
        default_resources={"cpu": "250m", "memory": "1Gi"},
    ):
        patch = admission.mutate(setup_cr())
    assert patch[1]["value"] == "from-config"
    assert patch[2]["value"] == {"cpu": "250m", "memory": "1Gi"}


def test_mutate_only_adds():
    """Make sure every operation of the patch is an add"""
    assert {op["op"] for op in admission.mutate(setup_cr())} == {"add"}


def test_mutate_is_additive():
    """Make sure applying the mutation never removes user set values"""
    cr = setup_cr(envVars={"A": "B"}, resources={"cpu": "2", "memory": "2Gi"})
    cr["metadata"]["labels"] = {"team": "a", constants.ADMISSION_MANAGED_BY_LABEL: "me"}
    mutated = admission.apply_mutation(cr, controller_name="ctrl")
    assert mutated["metadata"]["labels"] == {
        "team": "a",
        constants.ADMISSION_MANAGED_BY_LABEL: "ctrl",
    }
    assert mutated["spec"] == cr["spec"]


def test_mutate_is_idempotent():
    """Make sure applying the mutation to a mutated object changes nothing"""
    cr = setup_cr()
    once = admission.apply_mutation(cr, controller_name="ctrl")
    twice = admission.apply_mutation(once, controller_name="ctrl")
    assert once == twice
    assert once["spec"]["resources"] == {"cpu": "100m", "memory": "128Mi"}


def test_apply_mutation_does_not_modify_input():
    """Make sure the mutation is applied to a copy"""
    cr = setup_cr()
    original = copy.deepcopy(cr)
    admission.apply_mutation(cr)
    assert cr == original


def test_serialize_patch():
    """Make sure the serialized patch is the JSON form of the operations"""
    operations = admission.mutate(setup_cr(), controller_name="ctrl")
    assert json.loads(admission.serialize_patch(operations)) == operations
