import pytest

from teleform.exceptions import TemplateValidationError
from teleform.generators.aws import (
    AWS_SERVICES,
    LEGACY_SERVICES,
    DynamoDBForm,
    EC2Form,
    IAMForm,
    LambdaForm,
    RDSForm,
    S3Form,
    VPCForm,
    default_port,
    get_service,
)


def test_registry_has_all_services():
    assert sorted(AWS_SERVICES) == ["dynamodb", "ec2", "iam", "lambda", "rds", "s3", "vpc"]
    assert set(LEGACY_SERVICES) <= set(AWS_SERVICES)
    assert get_service("s3").file_prefix == "s3-bucket"


def test_unknown_service():
    with pytest.raises(TemplateValidationError):
        get_service("ecs")


def test_ec2_defaults():
    context = EC2Form.model_validate({}).to_context()

    assert context["instance_type"] == "t2.micro"
    assert context["ami_id"] == "ami-0c02fb55956c7d316"
    assert context["aws_region"] == "us-east-1"
    assert context["tags"] == {"Name": "teleform-ec2-instance", "Environment": "development"}


def test_blank_and_null_values_fall_back_to_defaults():
    context = EC2Form.model_validate(
        {"instanceType": "", "amiId": None, "keyName": "ops"}
    ).to_context()

    assert context["instance_type"] == "t2.micro"
    assert context["ami_id"] == "ami-0c02fb55956c7d316"
    assert context["key_name"] == "ops"


def test_s3_defaults_generate_bucket_name():
    context = S3Form.model_validate({}).to_context()

    assert context["bucket_name"].startswith("teleform-bucket-")
    assert context["enable_versioning"] is False
    assert context["block_public_access"] is True
    assert context["cors_origins"] == ["*"]


def test_s3_environment_tag():
    context = S3Form.model_validate(
        {"bucketName": "logs", "bucketEnvironment": "production"}
    ).to_context()

    assert context["tags"] == {"Name": "logs", "Environment": "production"}


@pytest.mark.parametrize(
    "engine, port", [("mysql", 3306), ("postgres", 5432), ("sqlserver-ex", 1433), ("db2", 3306)]
)
def test_rds_default_port_per_engine(engine, port):
    assert default_port(engine) == port


def test_rds_defaults():
    context = RDSForm.model_validate({"engine": "postgres"}).to_context()

    assert context["instance_class"] == "db.t3.micro"
    assert context["engine_version"] == "8.0"
    assert context["security_group_rules"] == [{"port": 5432, "cidr_blocks": ["10.0.0.0/16"]}]
    assert context["parameter_group_family"] == "postgres8.0"


def test_rds_existing_vpc_requires_subnets():
    with pytest.raises(TemplateValidationError):
        RDSForm.model_validate({"createVPC": False}).to_context()


def test_rds_max_storage_never_below_allocated():
    context = RDSForm.model_validate(
        {"allocatedStorage": 200, "maxAllocatedStorage": 100}
    ).to_context()
    assert context["max_allocated_storage"] == 200


def test_vpc_defaults():
    context = VPCForm.model_validate({}).to_context()

    assert context["vpc_cidr"] == "10.0.0.0/16"
    assert context["availability_zones"] == 2
    assert context["enable_nat_gateway"] is True


def test_lambda_defaults_follow_runtime():
    context = LambdaForm.model_validate({"runtime": "nodejs18.x"}).to_context()

    assert context["memory_size"] == 128
    assert context["timeout"] == 3
    assert context["handler"] == "index.handler"
    assert context["source_file"] == "index.js"
    assert "exports.handler" in context["function_code"]


def test_lambda_vpc_config_needs_subnets():
    context = LambdaForm.model_validate({"enableVpcConfig": True}).to_context()
    assert context["enable_vpc_config"] is False


def test_dynamodb_attributes_are_deduplicated():
    form = DynamoDBForm.model_validate(
        {
            "hashKey": "pk",
            "rangeKey": "sk",
            "globalSecondaryIndexes": [
                {"name": "by-sk", "hashKey": "sk", "rangeKey": "pk"},
                {"name": "by-owner", "hashKey": "owner"},
            ],
            "localSecondaryIndexes": [{"name": "by-date", "rangeKey": "created", "rangeKeyType": "N"}],
        }
    )

    assert form.attribute_definitions() == [
        {"name": "pk", "type": "S"},
        {"name": "sk", "type": "S"},
        {"name": "owner", "type": "S"},
        {"name": "created", "type": "N"},
    ]


def test_dynamodb_defaults():
    context = DynamoDBForm.model_validate({}).to_context()

    assert context["billing_mode"] == "PAY_PER_REQUEST"
    assert context["hash_key"] == "id"
    assert context["attributes"] == [{"name": "id", "type": "S"}]
    assert context["enable_auto_scaling"] is False


def test_dynamodb_lsi_requires_range_key():
    with pytest.raises(TemplateValidationError):
        DynamoDBForm.model_validate(
            {"localSecondaryIndexes": [{"name": "lsi", "rangeKey": "created"}]}
        ).to_context()


def test_iam_role_name_is_required():
    with pytest.raises(TemplateValidationError) as exc_info:
        IAMForm.model_validate({}).to_context()

    assert exc_info.value.message == "Role name is required"


def test_iam_defaults():
    context = IAMForm.model_validate({"roleName": "app"}).to_context()

    assert context["service_principal"] == "ec2.amazonaws.com"
    assert context["managed_policy_arns"] == []
