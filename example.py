"""Example usage of the contractdiff comparison engine."""

import copy
import json

from contractdiff import ContractDiffEngine, EngineConfig, ErrorResponse

# Baseline contract
old_contract = {
    "openapi": "3.0.3",
    "info": {"title": "Invoices", "version": "1.0.0"},
    "security": [{"api_key": []}],
    "paths": {
        "/invoices": {
            "get": {
                "summary": "List invoices",
                "parameters": [
                    {"name": "status", "in": "query", "schema": {"$ref": "#/components/schemas/Status"}},
                    {"name": "limit", "in": "query", "schema": {"type": "integer", "maximum": 100}},
                ],
                "responses": {
                    "200": {
                        "description": "Invoices",
                        "content": {
                            "application/json": {
                                "schema": {"type": "array", "items": {"$ref": "#/components/schemas/Invoice"}}
                            }
                        },
                    }
                },
            },
            "post": {
                "summary": "Create an invoice",
                "requestBody": {
                    "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Invoice"}}}
                },
                "responses": {"201": {"description": "Created"}},
            },
        },
        "/invoices/{id}": {
            "parameters": [{"name": "id", "in": "path", "required": True, "schema": {"type": "string"}}],
            "get": {
                "summary": "Get an invoice",
                "responses": {
                    "200": {
                        "description": "Invoice",
                        "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Invoice"}}},
                    },
                    "404": {"description": "Not found"},
                },
            },
        },
    },
    "components": {
        "securitySchemes": {"api_key": {"type": "apiKey", "name": "X-API-Key", "in": "header"}},
        "schemas": {
            "Status": {"type": "string", "enum": ["PAID", "PENDING"]},
            "Invoice": {
                "type": "object",
                "required": ["id", "total"],
                "properties": {
                    "id": {"type": "string", "readOnly": True},
                    "total": {"type": "number"},
                    "status": {"$ref": "#/components/schemas/Status"},
                    "lines": {"type": "array", "items": {"$ref": "#/components/schemas/Line"}},
                },
            },
            "Line": {
                "type": "object",
                "properties": {
                    "sku": {"type": "string", "maxLength": 32},
                    "invoice": {"$ref": "#/components/schemas/Invoice"},  # Cycle back to Invoice
                },
            },
        },
    },
}

# New contract: renamed path parameter, new optional filter, wider enum, new endpoint
new_contract = copy.deepcopy(old_contract)
new_contract["paths"]["/invoices/{invoiceId}"] = new_contract["paths"].pop("/invoices/{id}")
new_contract["paths"]["/invoices/{invoiceId}"]["parameters"][0]["name"] = "invoiceId"
new_contract["paths"]["/invoices"]["get"]["parameters"].append(
    {"name": "customer", "in": "query", "schema": {"type": "string"}}
)
new_contract["components"]["schemas"]["Status"]["enum"].append("VOID")
new_contract["paths"]["/customers"] = {
    "get": {"summary": "List customers", "responses": {"200": {"description": "Customers"}}}
}


def print_result(result):
    if isinstance(result, ErrorResponse):
        print(f"\nError: {result.error['code']}")
        print(f"Message: {result.error['message']}")
        print(f"Details: {result.error.get('details', {})}")
        return

    result.print_summary()
    changes = result.change_list()
    if changes:
        print(f"\nChanges (most specific first):")
        for entry in changes:
            print(f"  - [{entry.severity.name}] {entry.path}")
            for delta in entry.deltas:
                print(f"    {delta.change_type.value} {delta.field}: {delta.old_value} -> {delta.new_value}")


def main():
    print("=" * 60)
    print("contractdiff Comparison Engine - Example")
    print("=" * 60)

    # Create engine with default config
    engine = ContractDiffEngine()

    result = engine.compare(old_contract, new_contract, "v1", "v2")
    print_result(result)

    if not isinstance(result, ErrorResponse):
        print("\n" + "-" * 60)
        print("Full JSON Report:")
        print(json.dumps(result.to_dict(), indent=2))


def example_with_breaking_change():
    """Example that demonstrates incompatible changes."""
    print("\n" + "=" * 60)
    print("Example with Breaking Changes")
    print("=" * 60)

    breaking = copy.deepcopy(old_contract)
    invoice = breaking["components"]["schemas"]["Invoice"]
    invoice["properties"]["total"] = {"type": "string"}  # Type change
    breaking["components"]["schemas"]["Line"]["properties"]["sku"]["maxLength"] = 16  # Narrower request limit
    del breaking["paths"]["/invoices/{id}"]["get"]["responses"]["404"]  # Removed status code

    print_result(ContractDiffEngine().compare(old_contract, breaking, "v1", "v2-breaking"))


def example_with_ignores():
    """Example with JSONPath global ignores."""
    print("\n" + "=" * 60)
    print("Example with Global Ignores")
    print("=" * 60)

    changed = copy.deepcopy(old_contract)
    changed["paths"]["/invoices"]["post"]["requestBody"]["required"] = True

    config = EngineConfig(global_ignores=["$.paths.'/invoices'.post.requestBody.required"])
    print_result(ContractDiffEngine(config).compare(old_contract, changed, "v1", "v1-ignored"))


if __name__ == "__main__":
    main()
    example_with_breaking_change()
    example_with_ignores()
