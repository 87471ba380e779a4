"""
Custom resource handler for Custom::RandomCharString

Invoked through the CDK custom resource provider framework. Returning a dict
reports SUCCESS to CloudFormation; raising reports FAILED.
"""

import logging

from generator import try_generate

logger = logging.getLogger()
logger.setLevel(logging.INFO)

OUTPUT_ATTRIBUTE = 'RandomString'
SUPPORTED_REQUEST_TYPES = ('Create', 'Update', 'Delete')


class UnsupportedRequestTypeError(ValueError):
    pass


def handler(event, context):
    request_type = event.get('RequestType')
    logical_id = event.get('LogicalResourceId', 'RandomCharString')
    logger.info(f"Received {request_type} request for {logical_id}")

    if request_type not in SUPPORTED_REQUEST_TYPES:
        raise UnsupportedRequestTypeError(f"Unsupported RequestType: {request_type!r}")

    if request_type == 'Delete':
        return {
            'PhysicalResourceId': event.get('PhysicalResourceId', logical_id),
            'Data': {}
        }

    properties = event.get('ResourceProperties', {})
    result = try_generate(properties.get('StringLength'))
    if not result.ok:
        logger.error(f"Random string generation failed: {result.error}")
        raise result.error

    logger.info(f"Generated random string of length {len(result.value)}")
    response = {'Data': {OUTPUT_ATTRIBUTE: result.value}}

    # Update keeps the existing physical id
    if request_type == 'Update' and event.get('PhysicalResourceId'):
        response['PhysicalResourceId'] = event['PhysicalResourceId']
    else:
        response['PhysicalResourceId'] = f"{logical_id}-{result.value}"
    return response
