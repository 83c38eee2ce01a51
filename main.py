from iamjack import Effect, InlineScope, PermissionRule, PolicyOptions, identity_factory
from iamjack.aws.iam import ADMIN_GROUP_POLICY


def main():
    # Example usage of the identity factory
    aws_config = {
        "aws_access_key_id": "AKIAEXAMPLE",
        "aws_secret_access_key": "wJalrXUtnFEMI/K7MDENG/bPxRfiCYEXAMPLEKEY",
        "region_name": "us-east-1",
    }
    iam = identity_factory("aws", aws_config)

    read_logs = PermissionRule(
        effect=Effect.ALLOW,
        actions=("logs:GetLogEvents", "logs:DescribeLogStreams"),
    )
    arn = iam.create_policy(PolicyOptions(name="ReadLogs", rules=(read_logs,)))
    print(f"Managed policy: {arn}")

    group = iam.create_group("log readers", as_admin_group=True)
    iam.attach_policy_to_group(arn, group.id)
    print(f"Rules on {arn}: {iam.get_policy_rules(arn)}")

    inline = iam.get_policy(ADMIN_GROUP_POLICY, InlineScope.for_group(group.id))
    print(f"Inline admin policy: {inline}")

if __name__ == "__main__":
    main()
