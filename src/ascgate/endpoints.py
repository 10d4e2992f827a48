"""Thin App Store Connect resource helpers built on a Transport.

They return raw JSON:API resource dicts; interpreting attributes is left to
the analyzers that call them.
"""

from typing import Any, Union

from .errors import ApiError, AppNotFound
from .pagination import collect_all
from .transport import Transport

APP_FIELDS = (
    "name,bundleId,sku,primaryLocale,contentRightsDeclaration,"
    "isOrEverWasMadeForKids,availableInNewTerritories"
)
APP_INFO_FIELDS = "appStoreState,appStoreAgeRating,brazilAgeRating,kidsAgeBand"
APP_INFO_LOCALIZATION_FIELDS = (
    "locale,name,subtitle,privacyPolicyUrl,privacyChoicesUrl,privacyPolicyText"
)
VERSION_FIELDS = (
    "platform,versionString,appStoreState,copyright,releaseType,"
    "earliestReleaseDate,downloadable,createdDate"
)
VERSION_LOCALIZATION_FIELDS = (
    "locale,description,keywords,marketingUrl,promotionalText,supportUrl,whatsNew"
)
BUILD_FIELDS = (
    "version,uploadedDate,expirationDate,expired,minOsVersion,processingState,"
    "buildAudienceType,usesNonExemptEncryption"
)
SCREENSHOT_FIELDS = (
    "fileSize,fileName,sourceFileChecksum,imageAsset,assetToken,assetType,assetDeliveryState"
)
IAP_FIELDS = "name,productId,inAppPurchaseType,state,reviewNote,familySharable,contentHosting"
IAP_REVIEW_SCREENSHOT_FIELDS = "fileSize,fileName,assetDeliveryState,imageAsset"

EDITABLE_APP_INFO_STATES = frozenset(
    {
        "PREPARE_FOR_SUBMISSION",
        "READY_FOR_REVIEW",
        "WAITING_FOR_REVIEW",
        "IN_REVIEW",
        "PENDING_DEVELOPER_RELEASE",
    }
)

EDITABLE_VERSION_STATES = frozenset(
    {
        "PREPARE_FOR_SUBMISSION",
        "READY_FOR_REVIEW",
        "WAITING_FOR_REVIEW",
        "IN_REVIEW",
        "DEVELOPER_REJECTED",
        "REJECTED",
        "METADATA_REJECTED",
        "INVALID_BINARY",
        "PENDING_DEVELOPER_RELEASE",
        "PENDING_APPLE_RELEASE",
    }
)

Resource = dict[str, Any]


def _attr(resource: Resource, name: str) -> Any:
    return (resource.get("attributes") or {}).get(name)


def _first(page: Any) -> Union[Resource, None]:
    data = page.get("data") if isinstance(page, dict) else None
    if isinstance(data, list):
        return data[0] if data else None
    return data


def _optional(transport: Transport, path: str, params: dict[str, Any]) -> Union[Resource, None]:
    # 404 here means "nothing attached", anything else is a real failure
    try:
        return _first(transport.get(path, params))
    except ApiError as e:
        if e.status == 404:  # noqa: PLR2004
            return None
        raise


# ---------- apps ----------


def get_app_by_bundle_id(transport: Transport, bundle_id: str) -> Resource:
    page = transport.get(
        "/apps",
        {"filter[bundleId]": bundle_id, "fields[apps]": APP_FIELDS, "limit": 1},
    )
    app = _first(page)
    if app is None:
        raise AppNotFound(bundle_id)
    return app


def get_app_by_id(transport: Transport, app_id: str) -> Resource:
    return transport.get(f"/apps/{app_id}", {"fields[apps]": APP_FIELDS})["data"]


def get_app_infos(transport: Transport, app_id: str) -> list[Resource]:
    return collect_all(
        transport, f"/apps/{app_id}/appInfos", {"fields[appInfos]": APP_INFO_FIELDS}
    )


def get_current_app_info(transport: Transport, app_id: str) -> Union[Resource, None]:
    """The editable app info record, falling back to the first one."""
    infos = get_app_infos(transport, app_id)
    for info in infos:
        if _attr(info, "appStoreState") in EDITABLE_APP_INFO_STATES:
            return info
    return infos[0] if infos else None


def get_app_info_localizations(transport: Transport, app_info_id: str) -> list[Resource]:
    return collect_all(
        transport,
        f"/appInfos/{app_info_id}/appInfoLocalizations",
        {"fields[appInfoLocalizations]": APP_INFO_LOCALIZATION_FIELDS},
    )


def _by_locale(resources: list[Resource], locale: str) -> Union[Resource, None]:
    return next((r for r in resources if _attr(r, "locale") == locale), None)


def get_app_info_localization(
    transport: Transport, app_info_id: str, locale: str
) -> Union[Resource, None]:
    return _by_locale(get_app_info_localizations(transport, app_info_id), locale)


def get_app_with_info(transport: Transport, bundle_id: str) -> dict[str, Any]:
    app = get_app_by_bundle_id(transport, bundle_id)
    app_info = get_current_app_info(transport, app["id"])
    localizations = get_app_info_localizations(transport, app_info["id"]) if app_info else []
    return {"app": app, "app_info": app_info, "localizations": localizations}


# ---------- versions ----------


def get_versions(
    transport: Transport, app_id: str, platform: Union[str, None] = None
) -> list[Resource]:
    params = {"fields[appStoreVersions]": VERSION_FIELDS, "filter[platform]": platform}
    return collect_all(transport, f"/apps/{app_id}/appStoreVersions", params)


def get_latest_version(
    transport: Transport, app_id: str, platform: str = "IOS"
) -> Union[Resource, None]:
    page = transport.get(
        f"/apps/{app_id}/appStoreVersions",
        {
            "filter[platform]": platform,
            "fields[appStoreVersions]": VERSION_FIELDS,
            "sort": "-createdDate",
            "limit": 1,
        },
    )
    return _first(page)


def get_version_by_id(transport: Transport, version_id: str) -> Resource:
    return transport.get(
        f"/appStoreVersions/{version_id}", {"fields[appStoreVersions]": VERSION_FIELDS}
    )["data"]


def get_editable_version(
    transport: Transport, app_id: str, platform: str = "IOS"
) -> Union[Resource, None]:
    for version in get_versions(transport, app_id, platform):
        if _attr(version, "appStoreState") in EDITABLE_VERSION_STATES:
            return version
    return None


def get_version_localizations(transport: Transport, version_id: str) -> list[Resource]:
    return collect_all(
        transport,
        f"/appStoreVersions/{version_id}/appStoreVersionLocalizations",
        {"fields[appStoreVersionLocalizations]": VERSION_LOCALIZATION_FIELDS},
    )


def get_version_localization(
    transport: Transport, version_id: str, locale: str
) -> Union[Resource, None]:
    return _by_locale(get_version_localizations(transport, version_id), locale)


def get_builds(transport: Transport, app_id: str) -> list[Resource]:
    return collect_all(
        transport,
        f"/apps/{app_id}/builds",
        {"fields[builds]": BUILD_FIELDS, "sort": "-uploadedDate"},
    )


def get_latest_build(transport: Transport, app_id: str) -> Union[Resource, None]:
    page = transport.get(
        f"/apps/{app_id}/builds",
        {
            "fields[builds]": BUILD_FIELDS,
            "filter[processingState]": "VALID",
            "filter[expired]": False,
            "sort": "-uploadedDate",
            "limit": 1,
        },
    )
    return _first(page)


def get_version_build(transport: Transport, version_id: str) -> Union[Resource, None]:
    return _optional(
        transport, f"/appStoreVersions/{version_id}/build", {"fields[builds]": BUILD_FIELDS}
    )


def get_version_with_localizations(transport: Transport, version_id: str) -> dict[str, Any]:
    """Version, its localizations and attached build, fetched one after another."""
    return {
        "version": get_version_by_id(transport, version_id),
        "localizations": get_version_localizations(transport, version_id),
        "build": get_version_build(transport, version_id),
    }


# ---------- screenshots ----------


def get_screenshot_sets(transport: Transport, version_localization_id: str) -> list[Resource]:
    return collect_all(
        transport,
        f"/appStoreVersionLocalizations/{version_localization_id}/appScreenshotSets",
        {"fields[appScreenshotSets]": "screenshotDisplayType"},
    )


def get_screenshots(transport: Transport, screenshot_set_id: str) -> list[Resource]:
    return collect_all(
        transport,
        f"/appScreenshotSets/{screenshot_set_id}/appScreenshots",
        {"fields[appScreenshots]": SCREENSHOT_FIELDS},
    )


def get_screenshot_sets_with_screenshots(
    transport: Transport, version_localization_id: str
) -> list[dict[str, Any]]:
    return [
        {"set": s, "screenshots": get_screenshots(transport, s["id"])}
        for s in get_screenshot_sets(transport, version_localization_id)
    ]


# ---------- in-app purchases ----------


def get_in_app_purchases(transport: Transport, app_id: str) -> list[Resource]:
    return collect_all(
        transport, f"/apps/{app_id}/inAppPurchasesV2", {"fields[inAppPurchases]": IAP_FIELDS}
    )


def get_in_app_purchase_by_id(transport: Transport, iap_id: str) -> Resource:
    return transport.get(
        f"/inAppPurchasesV2/{iap_id}", {"fields[inAppPurchases]": IAP_FIELDS}
    )["data"]


def get_iap_localizations(transport: Transport, iap_id: str) -> list[Resource]:
    return collect_all(
        transport,
        f"/inAppPurchasesV2/{iap_id}/inAppPurchaseLocalizations",
        {"fields[inAppPurchaseLocalizations]": "locale,name,description"},
    )


def get_iap_review_screenshot(transport: Transport, iap_id: str) -> Union[Resource, None]:
    return _optional(
        transport,
        f"/inAppPurchasesV2/{iap_id}/appStoreReviewScreenshot",
        {"fields[inAppPurchaseAppStoreReviewScreenshots]": IAP_REVIEW_SCREENSHOT_FIELDS},
    )
