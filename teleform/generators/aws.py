"""
AWS form models.

Each form validates the JSON posted by the web UI and turns it into the
context of one Terraform template. Missing, null or blank fields fall back to
the defaults below.
"""

import time
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..exceptions import TemplateValidationError

DEFAULT_ENVIRONMENT = "development"

ENGINE_DEFAULT_PORTS: Dict[str, int] = {
    "mysql": 3306,
    "postgres": 5432,
    "mariadb": 3306,
    "oracle-ee": 1521,
    "oracle-se2": 1521,
    "sqlserver-ee": 1433,
    "sqlserver-se": 1433,
    "sqlserver-ex": 1433,
    "sqlserver-web": 1433,
}

LAMBDA_DEFAULT_CODE: Dict[str, str] = {
    "python3.9": (
        "def handler(event, context):\n"
        "    return {\n"
        "        'statusCode': 200,\n"
        "        'body': 'Hello from Lambda!'\n"
        "    }\n"
    ),
    "nodejs18.x": (
        "exports.handler = async (event) => {\n"
        "    const response = {\n"
        "        statusCode: 200,\n"
        "        body: JSON.stringify('Hello from Lambda!'),\n"
        "    };\n"
        "    return response;\n"
        "};\n"
    ),
    "java11": (
        "package example;\n"
        "\n"
        "import com.amazonaws.services.lambda.runtime.Context;\n"
        "import com.amazonaws.services.lambda.runtime.RequestHandler;\n"
        "\n"
        "public class Handler implements RequestHandler<Object, String> {\n"
        "    @Override\n"
        "    public String handleRequest(Object event, Context context) {\n"
        '        return "Hello from Lambda!";\n'
        "    }\n"
        "}\n"
    ),
}

LAMBDA_DEFAULT_SOURCE_FILE: Dict[str, str] = {
    "python3.9": "index.py",
    "python3.8": "index.py",
    "nodejs18.x": "index.js",
    "nodejs16.x": "index.js",
    "java11": "Handler.java",
    "java8": "Handler.java",
}


def default_port(engine: str) -> int:
    return ENGINE_DEFAULT_PORTS.get(engine, 3306)


def default_tags(name: str, environment: Optional[str] = None) -> Dict[str, str]:
    return {"Name": name, "Environment": environment or DEFAULT_ENVIRONMENT}


class AwsForm(BaseModel):
    """Base for all service forms.

    Subclasses set ``service`` (template name) and ``file_prefix`` (output
    file name prefix) and implement ``to_context``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    service: ClassVar[str]
    file_prefix: ClassVar[str]
    label: ClassVar[str]

    aws_region: str = Field(default="us-east-1", alias="awsRegion")
    tags: Optional[Dict[str, str]] = None

    @model_validator(mode="before")
    @classmethod
    def drop_blank_values(cls, data: Any) -> Any:
        """Treat null and blank strings as "not provided"."""
        if isinstance(data, dict):
            return {
                key: value
                for key, value in data.items()
                if value is not None and not (isinstance(value, str) and not value.strip())
            }
        return data

    def to_context(self) -> Dict[str, Any]:
        raise NotImplementedError

    def _base_context(self, name: str, environment: Optional[str] = None) -> Dict[str, Any]:
        return {
            "aws_region": self.aws_region,
            "tags": self.tags if self.tags is not None else default_tags(name, environment),
        }


class EC2Form(AwsForm):
    service: ClassVar[str] = "ec2"
    file_prefix: ClassVar[str] = "ec2-instance"
    label: ClassVar[str] = "EC2 Instance"

    instance_type: str = Field(default="t2.micro", alias="instanceType")
    ami_id: str = Field(default="ami-0c02fb55956c7d316", alias="amiId")
    key_name: str = Field(default="", alias="keyName")
    security_group: str = Field(default="", alias="securityGroup")
    subnet_id: str = Field(default="", alias="subnetId")
    user_data: str = Field(default="", alias="userData")

    def to_context(self) -> Dict[str, Any]:
        context = self._base_context("teleform-ec2-instance")
        context.update(
            instance_type=self.instance_type,
            ami_id=self.ami_id,
            key_name=self.key_name,
            security_group=self.security_group,
            subnet_id=self.subnet_id,
            user_data=self.user_data,
        )
        return context


class S3Form(AwsForm):
    service: ClassVar[str] = "s3"
    file_prefix: ClassVar[str] = "s3-bucket"
    label: ClassVar[str] = "S3 Bucket"

    bucket_name: Optional[str] = Field(default=None, alias="bucketName")
    bucket_environment: str = Field(default="", alias="bucketEnvironment")
    enable_versioning: bool = Field(default=False, alias="enableVersioning")
    enable_encryption: bool = Field(default=False, alias="enableEncryption")
    block_public_access: bool = Field(default=True, alias="blockPublicAccess")
    enable_website_hosting: bool = Field(default=False, alias="enableWebsiteHosting")
    index_document: str = Field(default="index.html", alias="indexDocument")
    error_document: str = Field(default="", alias="errorDocument")
    enable_cors: bool = Field(default=False, alias="enableCORS")
    cors_origins: List[str] = Field(default_factory=list, alias="corsOrigins")
    enable_lifecycle: bool = Field(default=False, alias="enableLifecycle")
    lifecycle_days: int = Field(default=30, alias="lifecycleDays", ge=1)
    noncurrent_version_days: int = Field(default=30, alias="noncurrentVersionDays", ge=1)

    def to_context(self) -> Dict[str, Any]:
        bucket_name = self.bucket_name or f"teleform-bucket-{int(time.time() * 1000)}"
        context = self._base_context(
            self.bucket_name or "teleform-bucket", self.bucket_environment
        )
        context.update(
            bucket_name=bucket_name,
            enable_versioning=self.enable_versioning,
            enable_encryption=self.enable_encryption,
            block_public_access=self.block_public_access,
            enable_website_hosting=self.enable_website_hosting,
            index_document=self.index_document,
            error_document=self.error_document,
            enable_cors=self.enable_cors,
            cors_origins=self.cors_origins or ["*"],
            enable_lifecycle=self.enable_lifecycle,
            lifecycle_days=self.lifecycle_days,
            noncurrent_version_days=self.noncurrent_version_days,
        )
        return context


class SecurityGroupRule(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    port: int
    cidr_blocks: List[str] = Field(default_factory=lambda: ["10.0.0.0/16"], alias="cidrBlocks")


class DbParameter(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    value: Any
    apply_method: str = Field(default="immediate", alias="applyMethod")


class DbOption(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    option_name: str = Field(alias="optionName")
    settings: Dict[str, Any] = Field(default_factory=dict)


class RDSForm(AwsForm):
    service: ClassVar[str] = "rds"
    file_prefix: ClassVar[str] = "rds-database"
    label: ClassVar[str] = "RDS Database"

    db_identifier: Optional[str] = Field(default=None, alias="dbIdentifier")
    engine: str = "mysql"
    engine_version: str = Field(default="8.0", alias="engineVersion")
    instance_class: str = Field(default="db.t3.micro", alias="instanceClass")
    allocated_storage: int = Field(default=20, alias="allocatedStorage", ge=1)
    max_allocated_storage: int = Field(default=100, alias="maxAllocatedStorage", ge=1)
    storage_type: str = Field(default="gp2", alias="storageType")
    storage_encrypted: bool = Field(default=False, alias="storageEncrypted")
    db_name: str = Field(default="teleformdb", alias="dbName")
    username: str = "admin"
    password: str = "changeme123!"
    multi_az: bool = Field(default=False, alias="multiAZ")
    publicly_accessible: bool = Field(default=False, alias="publiclyAccessible")
    backup_retention_period: int = Field(default=7, alias="backupRetentionPeriod", ge=0)
    backup_window: Optional[str] = Field(default=None, alias="backupWindow")
    maintenance_window: Optional[str] = Field(default=None, alias="maintenanceWindow")
    performance_insights_enabled: bool = Field(
        default=False, alias="performanceInsightsEnabled"
    )
    monitoring_interval: int = Field(default=0, alias="monitoringInterval", ge=0)
    deletion_protection: bool = Field(default=False, alias="deletionProtection")
    create_vpc: bool = Field(default=True, alias="createVPC")
    vpc_id: Optional[str] = Field(default=None, alias="vpcId")
    subnet_ids: List[str] = Field(default_factory=list, alias="subnetIds")
    security_group_rules: Optional[List[SecurityGroupRule]] = Field(
        default=None, alias="securityGroupRules"
    )
    create_parameter_group: bool = Field(default=False, alias="createParameterGroup")
    parameter_group_family: Optional[str] = Field(default=None, alias="parameterGroupFamily")
    parameters: List[DbParameter] = Field(default_factory=list)
    create_option_group: bool = Field(default=False, alias="createOptionGroup")
    major_engine_version: Optional[str] = Field(default=None, alias="majorEngineVersion")
    options: List[DbOption] = Field(default_factory=list)

    def to_context(self) -> Dict[str, Any]:
        if not self.create_vpc and not self.subnet_ids:
            raise TemplateValidationError(
                "subnetIds are required when createVPC is false", service=self.service
            )
        identifier = self.db_identifier or f"teleform-db-{int(time.time() * 1000)}"
        rules = self.security_group_rules or [SecurityGroupRule(port=default_port(self.engine))]
        context = self._base_context(self.db_identifier or "teleform-db")
        context.update(
            db_identifier=identifier,
            engine=self.engine,
            engine_version=self.engine_version,
            instance_class=self.instance_class,
            allocated_storage=self.allocated_storage,
            max_allocated_storage=max(self.max_allocated_storage, self.allocated_storage),
            storage_type=self.storage_type,
            storage_encrypted=self.storage_encrypted,
            db_name=self.db_name,
            username=self.username,
            password=self.password,
            multi_az=self.multi_az,
            publicly_accessible=self.publicly_accessible,
            backup_retention_period=self.backup_retention_period,
            backup_window=self.backup_window,
            maintenance_window=self.maintenance_window,
            performance_insights_enabled=self.performance_insights_enabled,
            monitoring_interval=self.monitoring_interval,
            deletion_protection=self.deletion_protection,
            create_vpc=self.create_vpc,
            vpc_id=self.vpc_id,
            subnet_ids=self.subnet_ids,
            security_group_rules=[rule.model_dump() for rule in rules],
            create_parameter_group=self.create_parameter_group,
            parameter_group_family=self.parameter_group_family
            or f"{self.engine}{self.engine_version}",
            parameters=[p.model_dump() for p in self.parameters],
            create_option_group=self.create_option_group,
            major_engine_version=self.major_engine_version or self.engine_version,
            options=[o.model_dump() for o in self.options],
        )
        return context


class VPCForm(AwsForm):
    service: ClassVar[str] = "vpc"
    file_prefix: ClassVar[str] = "vpc"
    label: ClassVar[str] = "VPC"

    vpc_name: str = Field(default="teleform-vpc", alias="vpcName")
    vpc_cidr: str = Field(default="10.0.0.0/16", alias="vpcCidr")
    availability_zones: int = Field(default=2, alias="availabilityZones", ge=1, le=6)
    enable_nat_gateway: bool = Field(default=True, alias="enableNatGateway")
    single_nat_gateway: bool = Field(default=False, alias="singleNatGateway")
    enable_dns_hostnames: bool = Field(default=True, alias="enableDnsHostnames")
    enable_dns_support: bool = Field(default=True, alias="enableDnsSupport")
    enable_database_subnets: bool = Field(default=False, alias="enableDatabaseSubnets")
    enable_vpn_gateway: bool = Field(default=False, alias="enableVpnGateway")
    enable_flow_logs: bool = Field(default=False, alias="enableFlowLogs")
    flow_logs_retention: int = Field(default=7, alias="flowLogsRetention", ge=1)

    def to_context(self) -> Dict[str, Any]:
        context = self._base_context(self.vpc_name)
        context.update(
            vpc_name=self.vpc_name,
            vpc_cidr=self.vpc_cidr,
            availability_zones=self.availability_zones,
            enable_nat_gateway=self.enable_nat_gateway,
            single_nat_gateway=self.single_nat_gateway,
            enable_dns_hostnames=self.enable_dns_hostnames,
            enable_dns_support=self.enable_dns_support,
            enable_database_subnets=self.enable_database_subnets,
            enable_vpn_gateway=self.enable_vpn_gateway,
            enable_flow_logs=self.enable_flow_logs,
            flow_logs_retention=self.flow_logs_retention,
        )
        return context


class LambdaForm(AwsForm):
    service: ClassVar[str] = "lambda"
    file_prefix: ClassVar[str] = "lambda"
    label: ClassVar[str] = "Lambda Function"

    function_name: str = Field(default="teleform-lambda", alias="functionName")
    function_description: str = Field(
        default="Lambda function created by Teleform", alias="functionDescription"
    )
    runtime: str = "python3.9"
    handler: str = "index.handler"
    memory_size: int = Field(default=128, alias="memorySize", ge=128, le=10240)
    timeout: int = Field(default=3, ge=1, le=900)
    architecture: str = "x86_64"
    function_code: Optional[str] = Field(default=None, alias="functionCode")
    source_file: Optional[str] = Field(default=None, alias="sourceFile")
    environment_variables: Dict[str, str] = Field(
        default_factory=dict, alias="environmentVariables"
    )
    enable_vpc_config: bool = Field(default=False, alias="enableVpcConfig")
    subnet_ids: List[str] = Field(default_factory=list, alias="subnetIds")
    security_group_ids: List[str] = Field(default_factory=list, alias="securityGroupIds")
    enable_api_gateway: bool = Field(default=False, alias="enableApiGateway")
    api_gateway_stage: str = Field(default="prod", alias="apiGatewayStage")
    enable_event_bridge: bool = Field(default=False, alias="enableEventBridge")
    schedule_expression: str = Field(default="rate(1 hour)", alias="scheduleExpression")
    enable_dynamodb: bool = Field(default=False, alias="enableDynamoDB")
    enable_s3: bool = Field(default=False, alias="enableS3")
    enable_cloudwatch_logs: bool = Field(default=True, alias="enableCloudWatchLogs")
    log_retention_days: int = Field(default=7, alias="logRetentionDays", ge=1)
    enable_dead_letter_queue: bool = Field(default=False, alias="enableDeadLetterQueue")
    enable_tracing: bool = Field(default=False, alias="enableTracing")

    def to_context(self) -> Dict[str, Any]:
        context = self._base_context(self.function_name)
        context.update(
            function_name=self.function_name,
            function_description=self.function_description,
            runtime=self.runtime,
            handler=self.handler,
            memory_size=self.memory_size,
            timeout=self.timeout,
            architecture=self.architecture,
            function_code=self.function_code
            or LAMBDA_DEFAULT_CODE.get(self.runtime, LAMBDA_DEFAULT_CODE["python3.9"]),
            source_file=self.source_file
            or LAMBDA_DEFAULT_SOURCE_FILE.get(self.runtime, "index.py"),
            environment_variables=self.environment_variables,
            enable_vpc_config=self.enable_vpc_config and bool(self.subnet_ids),
            subnet_ids=self.subnet_ids,
            security_group_ids=self.security_group_ids,
            enable_api_gateway=self.enable_api_gateway,
            api_gateway_stage=self.api_gateway_stage,
            enable_event_bridge=self.enable_event_bridge,
            schedule_expression=self.schedule_expression,
            enable_dynamodb=self.enable_dynamodb,
            enable_s3=self.enable_s3,
            enable_cloudwatch_logs=self.enable_cloudwatch_logs,
            log_retention_days=self.log_retention_days,
            enable_dead_letter_queue=self.enable_dead_letter_queue,
            enable_tracing=self.enable_tracing,
        )
        return context


class SecondaryIndex(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    hash_key: Optional[str] = Field(default=None, alias="hashKey")
    hash_key_type: str = Field(default="S", alias="hashKeyType")
    range_key: Optional[str] = Field(default=None, alias="rangeKey")
    range_key_type: str = Field(default="S", alias="rangeKeyType")
    projection_type: str = Field(default="ALL", alias="projectionType")
    non_key_attributes: List[str] = Field(default_factory=list, alias="nonKeyAttributes")
    read_capacity: Optional[int] = Field(default=None, alias="readCapacity")
    write_capacity: Optional[int] = Field(default=None, alias="writeCapacity")


class DynamoDBForm(AwsForm):
    service: ClassVar[str] = "dynamodb"
    file_prefix: ClassVar[str] = "dynamodb"
    label: ClassVar[str] = "DynamoDB Table"

    table_name: str = Field(default="teleform-table", alias="tableName")
    billing_mode: str = Field(default="PAY_PER_REQUEST", alias="billingMode")
    read_capacity: int = Field(default=5, alias="readCapacity", ge=1)
    write_capacity: int = Field(default=5, alias="writeCapacity", ge=1)
    hash_key: str = Field(default="id", alias="hashKey")
    hash_key_type: str = Field(default="S", alias="hashKeyType")
    range_key: str = Field(default="", alias="rangeKey")
    range_key_type: str = Field(default="S", alias="rangeKeyType")
    enable_encryption: bool = Field(default=True, alias="enableEncryption")
    enable_point_in_time_recovery: bool = Field(
        default=False, alias="enablePointInTimeRecovery"
    )
    enable_ttl: bool = Field(default=False, alias="enableTtl")
    ttl_attribute_name: str = Field(default="ttl", alias="ttlAttributeName")
    enable_streams: bool = Field(default=False, alias="enableStreams")
    stream_view_type: str = Field(default="NEW_AND_OLD_IMAGES", alias="streamViewType")
    global_secondary_indexes: List[SecondaryIndex] = Field(
        default_factory=list, alias="globalSecondaryIndexes"
    )
    local_secondary_indexes: List[SecondaryIndex] = Field(
        default_factory=list, alias="localSecondaryIndexes"
    )
    enable_auto_scaling: bool = Field(default=False, alias="enableAutoScaling")
    auto_scaling_min_read_capacity: int = Field(default=1, alias="autoScalingMinReadCapacity")
    auto_scaling_max_read_capacity: int = Field(default=10, alias="autoScalingMaxReadCapacity")
    auto_scaling_min_write_capacity: int = Field(default=1, alias="autoScalingMinWriteCapacity")
    auto_scaling_max_write_capacity: int = Field(
        default=10, alias="autoScalingMaxWriteCapacity"
    )
    auto_scaling_target_value: int = Field(default=70, alias="autoScalingTargetValue")
    enable_backup: bool = Field(default=False, alias="enableBackup")
    backup_retention_days: int = Field(default=7, alias="backupRetentionDays", ge=1)

    @property
    def provisioned(self) -> bool:
        return self.billing_mode == "PROVISIONED"

    def attribute_definitions(self) -> List[Dict[str, str]]:
        """Key attributes of the table and its indexes, each declared once."""
        attributes: Dict[str, str] = {self.hash_key: self.hash_key_type}
        if self.range_key:
            attributes.setdefault(self.range_key, self.range_key_type)
        for gsi in self.global_secondary_indexes:
            if gsi.hash_key:
                attributes.setdefault(gsi.hash_key, gsi.hash_key_type)
            if gsi.range_key:
                attributes.setdefault(gsi.range_key, gsi.range_key_type)
        for lsi in self.local_secondary_indexes:
            if lsi.range_key:
                attributes.setdefault(lsi.range_key, lsi.range_key_type)
        return [{"name": name, "type": type_} for name, type_ in attributes.items()]

    def to_context(self) -> Dict[str, Any]:
        if self.local_secondary_indexes and not self.range_key:
            raise TemplateValidationError(
                "Local secondary indexes require a table range key", service=self.service
            )
        for gsi in self.global_secondary_indexes:
            if not gsi.hash_key:
                raise TemplateValidationError(
                    f"Global secondary index '{gsi.name}' requires a hashKey",
                    service=self.service,
                )

        gsi_list = []
        for gsi in self.global_secondary_indexes:
            data = gsi.model_dump()
            data["read_capacity"] = gsi.read_capacity or self.read_capacity
            data["write_capacity"] = gsi.write_capacity or self.write_capacity
            gsi_list.append(data)

        context = self._base_context(self.table_name)
        context.update(
            table_name=self.table_name,
            billing_mode=self.billing_mode,
            provisioned=self.provisioned,
            read_capacity=self.read_capacity,
            write_capacity=self.write_capacity,
            hash_key=self.hash_key,
            range_key=self.range_key,
            attributes=self.attribute_definitions(),
            enable_encryption=self.enable_encryption,
            enable_point_in_time_recovery=self.enable_point_in_time_recovery,
            enable_ttl=self.enable_ttl,
            ttl_attribute_name=self.ttl_attribute_name,
            enable_streams=self.enable_streams,
            stream_view_type=self.stream_view_type,
            gsi_list=gsi_list,
            lsi_list=[lsi.model_dump() for lsi in self.local_secondary_indexes],
            enable_auto_scaling=self.provisioned and self.enable_auto_scaling,
            auto_scaling_min_read_capacity=self.auto_scaling_min_read_capacity,
            auto_scaling_max_read_capacity=self.auto_scaling_max_read_capacity,
            auto_scaling_min_write_capacity=self.auto_scaling_min_write_capacity,
            auto_scaling_max_write_capacity=self.auto_scaling_max_write_capacity,
            auto_scaling_target_value=self.auto_scaling_target_value,
            enable_backup=self.enable_backup,
            backup_retention_days=self.backup_retention_days,
        )
        return context


class IAMForm(AwsForm):
    service: ClassVar[str] = "iam"
    file_prefix: ClassVar[str] = "iam-role"
    label: ClassVar[str] = "IAM Role"

    role_name: Optional[str] = Field(default=None, alias="roleName")
    role_description: str = Field(
        default="IAM role created by Teleform", alias="roleDescription"
    )
    service_principal: str = Field(default="ec2.amazonaws.com", alias="servicePrincipal")
    managed_policy_arns: List[str] = Field(default_factory=list, alias="managedPolicyArns")
    create_instance_profile: bool = Field(default=False, alias="createInstanceProfile")

    def to_context(self) -> Dict[str, Any]:
        if not self.role_name:
            raise TemplateValidationError("Role name is required", service=self.service)
        context = self._base_context(self.role_name)
        context.update(
            role_name=self.role_name,
            role_description=self.role_description,
            service_principal=self.service_principal,
            managed_policy_arns=self.managed_policy_arns,
            create_instance_profile=self.create_instance_profile,
        )
        return context


@dataclass(frozen=True)
class AwsService:
    """Registry entry tying a form to its template and output file name."""

    name: str
    label: str
    form: Type[AwsForm]

    @property
    def file_prefix(self) -> str:
        return self.form.file_prefix


AWS_FORMS: List[Type[AwsForm]] = [
    EC2Form,
    S3Form,
    RDSForm,
    VPCForm,
    LambdaForm,
    DynamoDBForm,
    IAMForm,
]

AWS_SERVICES: Dict[str, AwsService] = {
    form.service: AwsService(name=form.service, label=form.label, form=form)
    for form in AWS_FORMS
}

# /api/generate/<service> predates the per-service routers
LEGACY_SERVICES = ("ec2", "s3", "rds")


def get_service(name: str) -> AwsService:
    """
    Raises:
        TemplateValidationError: If the service is unknown
    """
    service = AWS_SERVICES.get(name)
    if service is None:
        raise TemplateValidationError(f"Unknown AWS service: {name}", service=name)
    return service
